import os
import re
import sqlite3
from datetime import date
from functools import wraps

from flask import Blueprint, Flask, Response, current_app, jsonify, request, session
from flask_cors import CORS
from markupsafe import escape

import store
from config import BakeryConfig, load_config
from logger import get_logger
from scheduling import CapacityAllocator, DeliveryWindowCalculator, InvalidQuantity

log = get_logger("upper_crust.app")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
APARTMENT_RE = re.compile(r"^\d{4}$")

bp = Blueprint("bakery", __name__)


# ---------------------------
# Helpers
# ---------------------------
def bakery() -> dict:
    return current_app.extensions["bakery"]


def cfg() -> BakeryConfig:
    return bakery()["config"]


def calculator() -> DeliveryWindowCalculator:
    return bakery()["calculator"]


def allocator() -> CapacityAllocator:
    return bakery()["allocator"]


def db() -> sqlite3.Connection:
    return store.db(cfg().db_path)


def body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    # Arrays and scalars are treated as an empty form
    return data if isinstance(data, dict) else {}


def field(data: dict, name: str) -> str:
    return (str(data.get(name, "") or "")).strip()


def error(message: str, status: int, **extra):
    payload = {"error": message}
    payload.update(extra)
    return jsonify(payload), status


def check_admin() -> bool:
    token = request.args.get("token", "") or request.headers.get("X-Admin-Token", "")
    return token == cfg().admin_token


def login_required(view):
    @wraps(view)
    def wrapped_view(**kwargs):
        if not session.get("user_id"):
            return error("Authentication required", 401)
        return view(**kwargs)

    return wrapped_view


def admin_required(view):
    @wraps(view)
    def wrapped_view(**kwargs):
        if not check_admin():
            return error("Admin token required", 403)
        return view(**kwargs)

    return wrapped_view


def parse_flag(v) -> bool:
    if isinstance(v, bool):
        return v
    return str(v or "").strip().lower() in ("1", "true", "yes", "on")


def parse_rating(raw) -> int:
    """Whole-number rating, or 0 when the value is not one."""
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else 0
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return 0


# ---------------------------
# Index / health
# ---------------------------
@bp.get("/")
def index():
    return Response(html_page(cfg()), mimetype="text/html")


@bp.get("/api")
def api_index():
    return jsonify(
        {
            "message": f"{cfg().app_title} API",
            "version": "1.0.0",
            "endpoints": {
                "health": "/api/health",
                "auth": "/api/auth",
                "delivery": "/api/delivery",
                "orders": "/api/orders",
                "reviews": "/api/reviews",
                "admin": "/api/admin",
            },
        }
    )


@bp.get("/api/health")
def health():
    return jsonify({"status": "ok", "message": f"{cfg().app_title} API is running"})


# ---------------------------
# Auth
# ---------------------------
@bp.post("/api/auth/register")
def register():
    data = body()
    first_name = field(data, "first_name")
    last_name = field(data, "last_name")
    apartment = field(data, "apartment")
    email = field(data, "email").lower()
    phone = field(data, "phone")

    if not first_name or not last_name or not apartment or not email or not phone:
        return error("All fields are required", 400)
    if not APARTMENT_RE.match(apartment):
        return error("Apartment number must be exactly 4 digits", 400)
    if not EMAIL_RE.match(email):
        return error("Invalid email format", 400)

    conn = db()
    try:
        if store.find_user_by_email(conn, email):
            return error("Email already registered", 400)
        try:
            user = store.create_user(conn, first_name, last_name, apartment, email, phone)
        except sqlite3.IntegrityError:
            return error("Email already registered", 400)
    finally:
        conn.close()

    session["user_id"] = user["id"]
    log.info("Registered user %s (%s)", user["id"], email)
    return jsonify(user), 201


@bp.post("/api/auth/login")
def login():
    data = body()
    email = field(data, "email").lower()
    apartment = field(data, "apartment")
    if not email or not apartment:
        return error("Email and apartment number are required", 400)

    conn = db()
    try:
        user = store.find_user_for_login(conn, email, apartment)
    finally:
        conn.close()

    if not user:
        log.info("Failed login for %s", email)
        return error("Invalid email or apartment number", 401)

    session["user_id"] = user["id"]
    log.info("User %s logged in", user["id"])
    return jsonify(user)


@bp.post("/api/auth/logout")
def logout():
    session.clear()
    return jsonify({"message": "Logged out successfully"})


@bp.get("/api/auth/me")
def me():
    user_id = session.get("user_id")
    if not user_id:
        return error("Not authenticated", 401)

    conn = db()
    try:
        user = store.get_user(conn, user_id)
    finally:
        conn.close()

    if not user:
        return error("User not found", 404)
    return jsonify(user)


# ---------------------------
# Delivery window
# ---------------------------
@bp.get("/api/delivery")
def delivery():
    now = calculator().now()
    dates = calculator().upcoming(weeks=4, now=now)

    conn = db()
    try:
        slots = []
        for d in dates:
            committed = store.committed_quantity(conn, d)
            slots.append(
                {
                    "date": d.isoformat(),
                    "committed": committed,
                    "remaining": allocator().remaining(committed),
                }
            )
    finally:
        conn.close()

    return jsonify(
        {
            "next_delivery_date": dates[0].isoformat(),
            "cutoff": cfg().cutoff.describe(),
            "weekly_cap": cfg().weekly_cap,
            "min_per_order": cfg().min_per_order,
            "max_per_order": cfg().max_per_order,
            "slots": slots,
        }
    )


# ---------------------------
# Orders
# ---------------------------
@bp.get("/api/orders")
@login_required
def my_orders():
    conn = db()
    try:
        orders = store.list_orders_for_user(conn, session["user_id"])
    finally:
        conn.close()
    return jsonify(orders)


@bp.post("/api/orders")
@login_required
def create_order():
    data = body()

    try:
        quantity = allocator().check_quantity(data.get("quantity"))
    except InvalidQuantity as e:
        return error(str(e), 400)

    now = calculator().now()
    d_str = field(data, "delivery_date")
    if d_str:
        try:
            d = date.fromisoformat(d_str)
        except ValueError:
            return error("Invalid delivery date", 400)
        if not calculator().is_valid(d, now=now):
            return error(
                f"Deliveries are on Mondays only; the earliest available is "
                f"{calculator().next_delivery_date(now).isoformat()}",
                400,
            )
    else:
        d = calculator().next_delivery_date(now)

    conn = db()
    try:
        user = store.get_user(conn, session["user_id"])
        if not user:
            return error("User not found", 404)

        decision, order = store.place_order(
            conn,
            allocator(),
            user,
            quantity,
            d,
            notes=field(data, "notes"),
            is_recurring=parse_flag(data.get("is_recurring")),
        )
    finally:
        conn.close()

    if not decision.accepted:
        log.warning(
            "Rejected order from user %s: %s loaves for %s, %s left",
            user["id"], quantity, d.isoformat(), decision.remaining,
        )
        return error(
            f"Only {decision.remaining} loaves left for {d.isoformat()}",
            409,
            remaining=decision.remaining,
            delivery_date=d.isoformat(),
        )

    log.info(
        "Accepted order %s from user %s: %s loaves for %s, %s left",
        order["id"], user["id"], quantity, d.isoformat(), decision.remaining,
    )
    order["remaining"] = decision.remaining
    return jsonify(order), 201


@bp.post("/api/orders/<int:order_id>/cancel")
@login_required
def cancel_order(order_id: int):
    conn = db()
    try:
        order = store.cancel_order(conn, order_id, session["user_id"])
    finally:
        conn.close()

    if not order:
        return error("Active order not found", 404)

    log.info("Cancelled order %s (%s loaves for %s)", order_id, order["quantity"], order["delivery_date"])
    return jsonify(order)


# ---------------------------
# Reviews
# ---------------------------
@bp.post("/api/reviews")
@login_required
def create_review():
    data = body()
    rating = parse_rating(data.get("rating"))
    if rating < 1 or rating > 5:
        return error("Rating must be between 1 and 5", 400)

    conn = db()
    try:
        review = store.create_review(conn, session["user_id"], rating, field(data, "text"))
    finally:
        conn.close()
    return jsonify(review), 201


@bp.get("/api/reviews/my")
@login_required
def my_reviews():
    conn = db()
    try:
        reviews = store.list_reviews_for_user(conn, session["user_id"])
    finally:
        conn.close()
    return jsonify(reviews)


# ---------------------------
# Admin
# ---------------------------
@bp.get("/api/admin/users")
@admin_required
def admin_users():
    conn = db()
    try:
        users = store.list_users(conn)
    finally:
        conn.close()
    return jsonify(users)


@bp.get("/api/admin/orders")
@admin_required
def admin_orders():
    conn = db()
    try:
        orders = store.list_orders(conn)
    finally:
        conn.close()
    return jsonify(orders)


@bp.get("/api/admin/orders/<int:order_id>")
@admin_required
def admin_order(order_id: int):
    conn = db()
    try:
        order = store.get_order_with_customer(conn, order_id)
    finally:
        conn.close()

    if not order:
        return error("Order not found", 404)
    return jsonify(order)


@bp.get("/api/admin/calendar")
@admin_required
def admin_calendar():
    conn = db()
    try:
        data = store.calendar(conn, allocator())
    finally:
        conn.close()
    return jsonify(data)


@bp.get("/api/admin/export.csv")
@admin_required
def export_csv():
    d_str = request.args.get("date", "")
    try:
        d = date.fromisoformat(d_str) if d_str else calculator().next_delivery_date()
    except ValueError:
        return error("Invalid date", 400)

    conn = db()
    try:
        rows = store.list_active_orders_for_date(conn, d)
    finally:
        conn.close()

    def esc(s):
        s = "" if s is None else str(s)
        s = s.replace('"', '""')
        return f'"{s}"'

    header = "id;delivery_date;name;apartment;phone;email;quantity;recurring;notes;status"
    lines = [header]
    for r in rows:
        lines.append(
            ";".join(
                [
                    esc(r["id"]),
                    esc(r["delivery_date"]),
                    esc(r["name"]),
                    esc(r["apartment"]),
                    esc(r["phone"]),
                    esc(r["email"]),
                    esc(r["quantity"]),
                    esc("weekly" if r["is_recurring"] else ""),
                    esc(r["notes"]),
                    esc(r["status"]),
                ]
            )
        )

    csv_data = "\ufeff" + "\n".join(lines) + "\n"
    return Response(
        csv_data,
        mimetype="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="orders_{d.isoformat()}.csv"'},
    )


# ---------------------------
# Errors
# ---------------------------
@bp.app_errorhandler(404)
def not_found(e):
    return error("Endpoint not found", 404)


@bp.app_errorhandler(405)
def method_not_allowed(e):
    return error("Method not allowed", 405)


@bp.app_errorhandler(500)
def server_error(e):
    log.exception("Unhandled error on %s %s", request.method, request.path)
    return error("Internal server error", 500)


# ---------------------------
# HTML shell
# ---------------------------
def html_page(config: BakeryConfig) -> str:
    shell = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>__TITLE__</title>

<style>
:root{
  --crust-brown:#6B3E26;
  --crust-gold:#D9A441;
  --crust-red:#B23A2E;
  --crust-bg:#FBF5EA;
}

*{ box-sizing:border-box; }

body{
  font-family:-apple-system, system-ui, Arial;
  margin:18px;
  background:var(--crust-bg);
  color:var(--crust-brown);
}

.card{
  border:2px solid var(--crust-brown);
  padding:24px;
  margin:24px auto;
  max-width:760px;
}

h1{ text-align:center; letter-spacing:1px; margin:0 0 8px 0; }
h1 small{ display:block; color:var(--crust-gold); font-size:16px; margin-top:4px; }
h2{ margin-top:0; }

label{ display:block; font-weight:800; margin-top:10px; }
input, textarea, select{
  width:100%;
  padding:10px;
  border:2px solid var(--crust-brown);
  background:#fff;
  font-size:16px;
}

button{
  border:2px solid var(--crust-brown);
  background:var(--crust-brown);
  color:#fff;
  padding:10px 16px;
  font-weight:800;
  cursor:pointer;
  margin-top:12px;
}
button.secondary{ background:transparent; color:var(--crust-brown); }
.qty button{ width:56px; margin-right:6px; background:transparent; color:var(--crust-brown); }
.qty button.active{ background:var(--crust-gold); color:var(--crust-brown); }

.muted{ opacity:.75; }
.danger{ color:var(--crust-red); font-weight:800; }
.pill{ display:inline-block; border:2px solid var(--crust-brown); padding:2px 10px; margin:2px; }
.hidden{ display:none; }

table{ width:100%; border-collapse:collapse; }
td, th{ border-bottom:1px solid var(--crust-brown); padding:6px; text-align:left; }
</style>
</head>
<body>

<h1>__TITLE__<small>fresh loaves, delivered Mondays</small></h1>
<p class="muted" style="text-align:center">Order cutoff: __CUTOFF__. Up to __CAP__ loaves per delivery.</p>

<div id="msg" class="card hidden"></div>

<div id="auth" class="card">
  <h2>Log in</h2>
  <form id="loginForm">
    <label>Email<input name="email" type="email" required></label>
    <label>Apartment<input name="apartment" maxlength="4" required></label>
    <button type="submit">Log in</button>
  </form>

  <h2 style="margin-top:28px">New here? Register</h2>
  <form id="registerForm">
    <label>First name<input name="first_name" required></label>
    <label>Last name<input name="last_name" required></label>
    <label>Apartment (4 digits)<input name="apartment" maxlength="4" required></label>
    <label>Email<input name="email" type="email" required></label>
    <label>Phone<input name="phone" required></label>
    <button type="submit">Register</button>
  </form>
</div>

<div id="dashboard" class="hidden">
  <div class="card">
    <h2>Hello, <span id="userName"></span></h2>
    <button class="secondary" id="logoutBtn" type="button">Log out</button>
  </div>

  <div class="card">
    <h2>Place an order</h2>
    <form id="orderForm">
      <label>Delivery Monday<select name="delivery_date" id="deliveryDate"></select></label>
      <label>Loaves</label>
      <div class="qty" id="qty"></div>
      <input type="hidden" name="quantity" id="quantity" value="__MIN__">
      <label>Notes<textarea name="notes" rows="3"></textarea></label>
      <label style="font-weight:400"><input type="checkbox" name="is_recurring" style="width:auto"> Repeat weekly</label>
      <button type="submit">Order</button>
    </form>
  </div>

  <div class="card">
    <h2>My orders</h2>
    <table><thead><tr><th>Delivery</th><th>Loaves</th><th>Status</th><th></th></tr></thead>
    <tbody id="ordersBody"></tbody></table>
  </div>

  <div class="card">
    <h2>Reviews</h2>
    <form id="reviewForm">
      <label>Rating<select name="rating">
        <option value="5">5</option><option value="4">4</option><option value="3">3</option>
        <option value="2">2</option><option value="1">1</option>
      </select></label>
      <label>Your review<textarea name="text" rows="4"></textarea></label>
      <button type="submit">Submit review</button>
    </form>
    <div id="reviewsList"></div>
  </div>
</div>

<div class="card">
  <h2>Admin</h2>
  <form id="adminForm">
    <label>Token<input name="token" type="password"></label>
    <button type="submit" class="secondary">Load</button>
  </form>
  <div id="adminCalendar"></div>
  <h3>All orders</h3>
  <table><tbody id="adminOrders"></tbody></table>
  <div id="adminOrderDetail"></div>
  <h3>Customers</h3>
  <table><tbody id="adminUsers"></tbody></table>
</div>

<script>
(function(){
  const MIN = __MIN__, MAX = __MAX__;
  const $ = (id) => document.getElementById(id);
  let adminToken = "";

  function esc(v){
    return String(v == null ? "" : v)
      .replace(/&/g, "&amp;")
      .replace(/</g, "&lt;")
      .replace(/>/g, "&gt;")
      .replace(/"/g, "&quot;")
      .replace(/'/g, "&#39;");
  }

  function show(text, bad){
    const m = $("msg");
    m.innerHTML = "<p" + (bad ? " class='danger'" : "") + ">" + esc(text) + "</p>";
    m.classList.remove("hidden");
  }

  async function api(path, opts){
    opts = opts || {};
    const resp = await fetch(path, Object.assign({
      credentials: "same-origin",
      headers: {"Content-Type": "application/json"}
    }, opts));
    const data = await resp.json().catch(() => ({}));
    if(!resp.ok){ throw Object.assign(new Error(data.error || resp.statusText), {data}); }
    return data;
  }

  function formJSON(form){
    const out = {};
    new FormData(form).forEach((v, k) => { out[k] = v; });
    return out;
  }

  function renderQty(){
    const box = $("qty");
    box.innerHTML = "";
    for(let i = MIN; i <= MAX; i++){
      const b = document.createElement("button");
      b.type = "button";
      b.textContent = i;
      if(String(i) === $("quantity").value){ b.classList.add("active"); }
      b.addEventListener("click", () => { $("quantity").value = i; renderQty(); });
      box.appendChild(b);
    }
  }

  async function loadDelivery(){
    const d = await api("/api/delivery");
    $("deliveryDate").innerHTML = d.slots.map(s =>
      "<option value='" + esc(s.date) + "'" + (s.remaining < MIN ? " disabled" : "") + ">" +
      esc(s.date) + " (" + esc(s.remaining) + " left)</option>"
    ).join("");
  }

  let myOrders = [];

  async function loadOrders(){
    myOrders = await api("/api/orders");
    $("ordersBody").innerHTML = myOrders.map(o =>
      "<tr><td>" + esc(o.delivery_date) + "</td><td>" + esc(o.quantity) + "</td><td>" + esc(o.status) +
      (o.is_recurring ? " <span class='pill'>weekly</span>" : "") + "</td><td>" +
      "<button class='secondary' data-reorder='" + esc(o.id) + "'>Reorder</button>" +
      (o.status !== "cancelled" ? "<button class='secondary' data-cancel='" + esc(o.id) + "'>Cancel</button>" : "") +
      "</td></tr>"
    ).join("");
  }

  async function loadReviews(){
    const reviews = await api("/api/reviews/my");
    $("reviewsList").innerHTML = reviews.length ? reviews.map(r =>
      "<p><span class='pill'>" + esc(r.rating) + "/5</span> " + esc(r.text) +
      " <small class='muted'>" + esc(r.created_at.slice(0, 10)) + "</small></p>"
    ).join("") : "<p class='muted'>No reviews yet.</p>";
  }

  async function enter(user){
    $("userName").textContent = user.first_name + " " + user.last_name;
    $("auth").classList.add("hidden");
    $("dashboard").classList.remove("hidden");
    renderQty();
    await loadDelivery();
    await loadOrders();
    await loadReviews();
  }

  $("loginForm").addEventListener("submit", async (e) => {
    e.preventDefault();
    try { await enter(await api("/api/auth/login", {method: "POST", body: JSON.stringify(formJSON(e.target))})); }
    catch(err){ show(err.message, true); }
  });

  $("registerForm").addEventListener("submit", async (e) => {
    e.preventDefault();
    try { await enter(await api("/api/auth/register", {method: "POST", body: JSON.stringify(formJSON(e.target))})); }
    catch(err){ show(err.message, true); }
  });

  $("logoutBtn").addEventListener("click", async () => {
    await api("/api/auth/logout", {method: "POST"});
    location.reload();
  });

  $("orderForm").addEventListener("submit", async (e) => {
    e.preventDefault();
    const payload = formJSON(e.target);
    payload.is_recurring = e.target.is_recurring.checked;
    try {
      const o = await api("/api/orders", {method: "POST", body: JSON.stringify(payload)});
      show("Order confirmed: " + o.quantity + " loaves for Monday " + o.delivery_date + ".");
    } catch(err){ show(err.message, true); }
    await loadDelivery();
    await loadOrders();
  });

  $("ordersBody").addEventListener("click", async (e) => {
    const reorder = e.target.getAttribute("data-reorder");
    if(reorder){
      const o = myOrders.find(x => String(x.id) === reorder);
      if(o){
        $("quantity").value = Math.min(Math.max(o.quantity, MIN), MAX);
        renderQty();
        const f = $("orderForm");
        f.notes.value = o.notes || "";
        f.is_recurring.checked = !!o.is_recurring;
        f.scrollIntoView({behavior: "smooth"});
      }
      return;
    }
    const id = e.target.getAttribute("data-cancel");
    if(!id){ return; }
    try { await api("/api/orders/" + encodeURIComponent(id) + "/cancel", {method: "POST"}); show("Order cancelled."); }
    catch(err){ show(err.message, true); }
    await loadDelivery();
    await loadOrders();
  });

  $("reviewForm").addEventListener("submit", async (e) => {
    e.preventDefault();
    try {
      await api("/api/reviews", {method: "POST", body: JSON.stringify(formJSON(e.target))});
      e.target.reset();
      show("Thanks for your review!");
    } catch(err){ show(err.message, true); }
    await loadReviews();
  });

  function adminGet(path){
    return api(path, {headers: {"X-Admin-Token": adminToken}});
  }

  $("adminForm").addEventListener("submit", async (e) => {
    e.preventDefault();
    adminToken = e.target.token.value;
    const token = encodeURIComponent(adminToken);
    try {
      const cal = await adminGet("/api/admin/calendar");
      const days = Object.keys(cal);
      $("adminCalendar").innerHTML = days.length ? days.map(d =>
        "<h3>" + esc(d) + " <span class='pill'>" + esc(cal[d].committed) + " ordered</span>" +
        "<span class='pill'>" + esc(cal[d].remaining) + " left</span> " +
        "<a href='/api/admin/export.csv?date=" + encodeURIComponent(d) + "&token=" + token + "'>CSV</a></h3>" +
        "<table>" + cal[d].orders.map(o =>
          "<tr><td>" + esc(o.name) + "</td><td>" + esc(o.apartment) + "</td><td>" + esc(o.phone) + "</td><td>" +
          esc(o.quantity) + "</td><td class='muted'>" + esc(o.notes) + "</td></tr>"
        ).join("") + "</table>"
      ).join("") : "<p class='muted'>No orders yet.</p>";

      const orders = await adminGet("/api/admin/orders");
      $("adminOrders").innerHTML = orders.map(o =>
        "<tr><td><a href='#' data-order='" + esc(o.id) + "'>#" + esc(o.id) + "</a></td><td>" +
        esc(o.delivery_date) + "</td><td>" + esc(o.name) + "</td><td>" + esc(o.quantity) + "</td><td>" +
        esc(o.status) + "</td></tr>"
      ).join("");

      const users = await adminGet("/api/admin/users");
      $("adminUsers").innerHTML = users.map(u =>
        "<tr><td>" + esc(u.first_name) + " " + esc(u.last_name) + "</td><td>" + esc(u.apartment) +
        "</td><td>" + esc(u.email) + "</td><td>" + esc(u.phone) + "</td></tr>"
      ).join("");
    } catch(err){ show(err.message, true); }
  });

  $("adminOrders").addEventListener("click", async (e) => {
    const id = e.target.getAttribute("data-order");
    if(!id){ return; }
    e.preventDefault();
    try {
      const o = await adminGet("/api/admin/orders/" + encodeURIComponent(id));
      $("adminOrderDetail").innerHTML =
        "<div class='card'><h3>Order #" + esc(o.id) + "</h3>" +
        "<p><b>" + esc(o.first_name) + " " + esc(o.last_name) + "</b>, apt " + esc(o.apartment) + "</p>" +
        "<p>" + esc(o.email) + " / " + esc(o.phone) + "</p>" +
        "<p>" + esc(o.quantity) + " loaves for " + esc(o.delivery_date) + " <span class='pill'>" + esc(o.status) + "</span>" +
        (o.is_recurring ? " <span class='pill'>weekly</span>" : "") + "</p>" +
        "<p class='muted'>" + esc(o.notes) + "</p>" +
        "<p class='muted'>Placed " + esc(o.order_time) + "</p></div>";
    } catch(err){ show(err.message, true); }
  });

  api("/api/auth/me").then(enter).catch(() => {});
})();
</script>

</body>
</html>"""
    return (
        shell.replace("__TITLE__", str(escape(config.app_title)))
        .replace("__CUTOFF__", config.cutoff.describe())
        .replace("__CAP__", str(config.weekly_cap))
        .replace("__MIN__", str(config.min_per_order))
        .replace("__MAX__", str(config.max_per_order))
    )


# ---------------------------
# App
# ---------------------------
def create_app(config: BakeryConfig = None, clock=None) -> Flask:
    config = config or load_config()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    CORS(app, origins=[config.cors_origin], supports_credentials=True)

    app.extensions["bakery"] = {
        "config": config,
        "calculator": DeliveryWindowCalculator(config, clock=clock),
        "allocator": CapacityAllocator(config),
    }

    store.init_db(config.db_path)
    app.register_blueprint(bp)

    log.info(
        "Bakery app ready: db=%s cutoff=%s cap=%s",
        config.db_path, config.cutoff.describe(), config.weekly_cap,
    )
    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=True)
