import sqlite3
from datetime import datetime, date, timezone
from typing import List, Optional, Tuple

from scheduling import CapacityAllocator, CapacityDecision

DEFAULT_AVATAR = "/images/profile_bread.jpg"


# ---------------------------
# DB
# ---------------------------
def db(path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def ensure_columns(conn: sqlite3.Connection):
    # Upgrades order tables created before these columns existed
    cols = {r["name"] for r in conn.execute("PRAGMA table_info(orders)").fetchall()}
    if "user_id" not in cols:
        conn.execute("ALTER TABLE orders ADD COLUMN user_id INTEGER REFERENCES users(id)")
    if "is_recurring" not in cols:
        conn.execute("ALTER TABLE orders ADD COLUMN is_recurring INTEGER NOT NULL DEFAULT 0")
    if "recurring_frequency" not in cols:
        conn.execute("ALTER TABLE orders ADD COLUMN recurring_frequency TEXT")


def init_db(path: str):
    conn = db(path)
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            apartment TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            phone TEXT NOT NULL,
            avatar TEXT NOT NULL DEFAULT '/images/profile_bread.jpg',
            created_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS orders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER REFERENCES users(id),
            name TEXT NOT NULL,
            phone TEXT NOT NULL,
            apartment TEXT NOT NULL,
            quantity INTEGER NOT NULL CHECK (quantity >= 1),
            delivery_date TEXT NOT NULL,
            notes TEXT,
            order_time TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending',
            is_recurring INTEGER NOT NULL DEFAULT 0,
            recurring_frequency TEXT
        )
        """
    )
    ensure_columns(conn)
    conn.execute("CREATE INDEX IF NOT EXISTS idx_orders_delivery_status ON orders(delivery_date, status)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_orders_user ON orders(user_id)")

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS reviews (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES users(id),
            rating INTEGER NOT NULL CHECK (rating >= 1 AND rating <= 5),
            text TEXT,
            created_at TEXT NOT NULL
        )
        """
    )
    conn.commit()
    conn.close()


def utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def row_to_dict(row) -> Optional[dict]:
    if row is None:
        return None
    return dict(row)


def rows_to_list(rows) -> List[dict]:
    return [dict(r) for r in rows]


# ---------------------------
# Users
# ---------------------------
USER_COLUMNS = "id, first_name, last_name, apartment, email, phone, avatar, created_at"


def create_user(conn: sqlite3.Connection, first_name: str, last_name: str, apartment: str, email: str, phone: str) -> dict:
    """Raises sqlite3.IntegrityError when the email is taken."""
    created_at = utc_iso()
    cur = conn.execute(
        """
        INSERT INTO users (first_name, last_name, apartment, email, phone, avatar, created_at)
        VALUES (?,?,?,?,?,?,?)
        """,
        (first_name, last_name, apartment, email, phone, DEFAULT_AVATAR, created_at),
    )
    conn.commit()
    return get_user(conn, cur.lastrowid)


def get_user(conn: sqlite3.Connection, user_id: int) -> Optional[dict]:
    row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id=?", (user_id,)).fetchone()
    return row_to_dict(row)


def find_user_by_email(conn: sqlite3.Connection, email: str) -> Optional[dict]:
    row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE email=?", (email,)).fetchone()
    return row_to_dict(row)


def find_user_for_login(conn: sqlite3.Connection, email: str, apartment: str) -> Optional[dict]:
    row = conn.execute(
        f"SELECT {USER_COLUMNS} FROM users WHERE email=? AND apartment=?",
        (email, apartment),
    ).fetchone()
    return row_to_dict(row)


def list_users(conn: sqlite3.Connection) -> List[dict]:
    return rows_to_list(conn.execute(f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC").fetchall())


# ---------------------------
# Orders
# ---------------------------
def committed_quantity(conn: sqlite3.Connection, d: date) -> int:
    row = conn.execute(
        "SELECT COALESCE(SUM(quantity), 0) AS c FROM orders WHERE delivery_date=? AND status != 'cancelled'",
        (d.isoformat(),),
    ).fetchone()
    return int(row["c"])


def place_order(
    conn: sqlite3.Connection,
    allocator: CapacityAllocator,
    user: dict,
    quantity: int,
    d: date,
    notes: str = "",
    is_recurring: bool = False,
) -> Tuple[CapacityDecision, Optional[dict]]:
    """
    Reserve `quantity` loaves for `d` and insert the order.

    BEGIN IMMEDIATE takes the write lock before the committed sum is read, so
    the check and the insert cannot interleave with another submission.
    Returns the decision and the new order (None when rejected).
    """
    try:
        conn.execute("BEGIN IMMEDIATE")

        decision = allocator.evaluate(d, quantity, committed_quantity(conn, d))
        if not decision.accepted:
            conn.rollback()
            return decision, None

        cur = conn.execute(
            """
            INSERT INTO orders(
              user_id, name, phone, apartment, quantity, delivery_date,
              notes, order_time, status, is_recurring, recurring_frequency
            )
            VALUES (?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                user["id"], f"{user['first_name']} {user['last_name']}", user["phone"], user["apartment"],
                quantity, d.isoformat(),
                notes or "", utc_iso(), "pending",
                1 if is_recurring else 0, "weekly" if is_recurring else None,
            ),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    return decision, get_order(conn, cur.lastrowid)


def get_order(conn: sqlite3.Connection, order_id: int) -> Optional[dict]:
    return row_to_dict(conn.execute("SELECT * FROM orders WHERE id=?", (order_id,)).fetchone())


def get_order_with_customer(conn: sqlite3.Connection, order_id: int) -> Optional[dict]:
    row = conn.execute(
        """
        SELECT o.*, u.first_name, u.last_name, u.email, u.avatar
        FROM orders o
        LEFT JOIN users u ON o.user_id = u.id
        WHERE o.id = ?
        """,
        (order_id,),
    ).fetchone()
    return row_to_dict(row)


def list_orders_for_user(conn: sqlite3.Connection, user_id: int) -> List[dict]:
    rows = conn.execute(
        "SELECT * FROM orders WHERE user_id=? ORDER BY order_time DESC, id DESC",
        (user_id,),
    ).fetchall()
    return rows_to_list(rows)


def list_orders(conn: sqlite3.Connection) -> List[dict]:
    rows = conn.execute("SELECT * FROM orders ORDER BY delivery_date ASC, order_time DESC").fetchall()
    return rows_to_list(rows)


def list_active_orders_for_date(conn: sqlite3.Connection, d: date) -> List[dict]:
    rows = conn.execute(
        """
        SELECT o.*, u.first_name, u.last_name, u.email
        FROM orders o
        LEFT JOIN users u ON o.user_id = u.id
        WHERE o.delivery_date = ? AND o.status != 'cancelled'
        ORDER BY o.order_time ASC
        """,
        (d.isoformat(),),
    ).fetchall()
    return rows_to_list(rows)


def calendar(conn: sqlite3.Connection, allocator: CapacityAllocator) -> dict:
    """Non-cancelled orders grouped by delivery date, with capacity per date."""
    dates = conn.execute(
        """
        SELECT delivery_date, COUNT(*) AS order_count, SUM(quantity) AS committed
        FROM orders
        WHERE status != 'cancelled'
        GROUP BY delivery_date
        ORDER BY delivery_date ASC
        """
    ).fetchall()

    data = {}
    for r in dates:
        d = date.fromisoformat(r["delivery_date"])
        data[r["delivery_date"]] = {
            "order_count": r["order_count"],
            "committed": r["committed"],
            "remaining": allocator.remaining(r["committed"]),
            "orders": list_active_orders_for_date(conn, d),
        }
    return data


def cancel_order(conn: sqlite3.Connection, order_id: int, user_id: int) -> Optional[dict]:
    """Mark the user's pending order cancelled, freeing its units. None if not found."""
    existing = conn.execute(
        "SELECT * FROM orders WHERE id=? AND user_id=? AND status != 'cancelled'",
        (order_id, user_id),
    ).fetchone()
    if not existing:
        return None

    conn.execute("UPDATE orders SET status='cancelled' WHERE id=?", (order_id,))
    conn.commit()
    return get_order(conn, order_id)


# ---------------------------
# Reviews
# ---------------------------
def create_review(conn: sqlite3.Connection, user_id: int, rating: int, text: str) -> dict:
    cur = conn.execute(
        "INSERT INTO reviews (user_id, rating, text, created_at) VALUES (?,?,?,?)",
        (user_id, rating, text or "", utc_iso()),
    )
    conn.commit()
    return row_to_dict(conn.execute("SELECT * FROM reviews WHERE id=?", (cur.lastrowid,)).fetchone())


def list_reviews_for_user(conn: sqlite3.Connection, user_id: int) -> List[dict]:
    rows = conn.execute(
        "SELECT * FROM reviews WHERE user_id=? ORDER BY created_at DESC, id DESC",
        (user_id,),
    ).fetchall()
    return rows_to_list(rows)
