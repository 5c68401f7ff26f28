from __future__ import annotations

import io
import logging
import os
from dataclasses import asdict
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Tuple

from flask import (
    Flask,
    current_app,
    jsonify,
    request,
    session,
    send_from_directory,
)
from flask_cors import CORS
from werkzeug.utils import secure_filename

from .api_client import ApiClient
from .calculations import (
    apply_equal_split,
    decimal_text,
    equal_split,
    expense_summary_text,
    fees_total,
    grand_total,
    item_subtotal,
    items_total,
    parse_amount,
    parse_quantity,
    share_allocation_check,
    share_allocation_error,
    share_percentage,
    validate_expense_item,
    validate_group_expense,
    validate_other_fee,
)
from .config import config
from .debts import (
    balance_text,
    filter_transactions,
    friend_balance,
    friend_stats,
    validate_anonymous_friend_name,
    validate_debt_transaction,
)
from .errors import ApiError, ValidationError, handle_api_error, is_auth_error
from .expenses import build_draft_request, can_confirm, can_edit, expense_summary
from .formatting import format_currency, format_date, format_smart_date, get_currency_code
from .forms import (
    sanitize_string,
    validate_email,
    validate_integer,
    validate_numeric,
    validate_password,
    validate_password_confirmation,
    validate_required,
)
from .models import (
    DebtTransaction,
    ExpenseItem,
    FeeCalculationMethod,
    GroupExpense,
    ItemParticipant,
    OtherFee,
)

ALLOWED_BILL_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

ApiClientFactory = Callable[[Optional[str]], ApiClient]


def _default_api_client(token: Optional[str]) -> ApiClient:
    return ApiClient(token=token)


def create_app(api_client_factory: Optional[ApiClientFactory] = None) -> Flask:
    app = Flask(
        __name__,
        static_folder=config.FRONTEND_DIR,
        static_url_path="",
    )
    app.config["SECRET_KEY"] = config.SECRET_KEY
    app.config["SESSION_COOKIE_NAME"] = config.SESSION_COOKIE_NAME
    app.config["SESSION_COOKIE_HTTPONLY"] = config.SESSION_COOKIE_HTTPONLY
    app.config["SESSION_COOKIE_SAMESITE"] = config.SESSION_COOKIE_SAMESITE
    app.config["SESSION_COOKIE_SECURE"] = config.SESSION_COOKIE_SECURE
    app.config["API_CLIENT_FACTORY"] = api_client_factory or _default_api_client

    logging.basicConfig(level=config.LOG_LEVEL)
    app.logger.setLevel(config.LOG_LEVEL)

    CORS(
        app,
        supports_credentials=True,
        resources={r"/api/*": {"origins": config.CORS_ORIGINS}},
    )

    register_error_handlers(app)
    register_routes(app)
    return app


def require_login(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        if "auth_token" not in session:
            return jsonify({"error": "authentication_required"}), 401
        return func(*args, **kwargs)

    return wrapper


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def handle_remote_error(exc: ApiError):
        if is_auth_error(exc):
            # the remote token is no longer valid
            session.clear()
        app.logger.warning("Remote API error (status=%s): %s", exc.status, exc.message)
        return jsonify({"error": handle_api_error(exc)}), exc.status or 502

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return jsonify({"error": str(exc)}), 400


def register_routes(app: Flask) -> None:
    @app.route("/", defaults={"path": "index.html"})
    @app.route("/<path:path>")
    def serve_frontend(path: str):
        return send_from_directory(app.static_folder, path)

    # ---------- Auth ----------
    @app.post("/api/register")
    def register():
        payload = _payload()
        email = (payload.get("email") or "").strip().lower()
        password = payload.get("password") or ""
        confirmation = payload.get("passwordConfirmation") or ""

        error = (
            validate_email(email)
            or validate_password(password)
            or validate_password_confirmation(password, confirmation)
        )
        if error:
            return jsonify({"error": error}), 400

        message = _api().register(email, password, confirmation)
        return jsonify({"message": message}), 201

    @app.get("/api/verify-registration")
    def verify_registration():
        token = request.args.get("token") or ""
        if not token:
            return jsonify({"error": "missing_token"}), 400
        result = _api().verify_registration(token)
        return jsonify(_start_session(result))

    @app.post("/api/login")
    def login():
        payload = _payload()
        email = (payload.get("email") or "").strip().lower()
        password = payload.get("password") or ""

        error = validate_email(email) or validate_required(password, "Password")
        if error:
            return jsonify({"error": error}), 400

        result = _api().login(email, password)
        return jsonify(_start_session(result))

    @app.get("/api/auth/<provider>/url")
    def oauth_url(provider: str):
        return jsonify({"url": _api().oauth_url(provider)})

    @app.get("/api/auth/<provider>/callback")
    def oauth_callback(provider: str):
        code = request.args.get("code") or ""
        state = request.args.get("state") or ""
        if not code or not state:
            return jsonify({"error": "missing_fields"}), 400
        result = _api().handle_oauth_callback(provider, code, state)
        return jsonify(_start_session(result))

    @app.post("/api/password-reset")
    def send_password_reset():
        email = (_payload().get("email") or "").strip().lower()
        error = validate_email(email)
        if error:
            return jsonify({"error": error}), 400
        _api().send_password_reset(email)
        return jsonify({"status": "ok"})

    @app.patch("/api/reset-password")
    def reset_password():
        payload = _payload()
        token = payload.get("token") or ""
        password = payload.get("password") or ""
        confirmation = payload.get("passwordConfirmation") or ""

        error = (
            validate_required(token, "Token")
            or validate_password(password)
            or validate_password_confirmation(password, confirmation)
        )
        if error:
            return jsonify({"error": error}), 400

        result = _api().reset_password(token, password, confirmation)
        return jsonify(_start_session(result))

    @app.post("/api/logout")
    @require_login
    def logout():
        session.clear()
        return jsonify({"status": "ok"})

    @app.get("/api/session")
    def get_session():
        if "auth_token" in session:
            return jsonify(
                {
                    "authenticated": True,
                    "user": {"profileId": session.get("profile_id"), "name": session.get("user_name")},
                }
            )
        return jsonify({"authenticated": False})

    # ---------- Profile ----------
    @app.get("/api/profile")
    @require_login
    def get_profile():
        return jsonify(_api().get_profile())

    @app.patch("/api/profile")
    @require_login
    def update_profile():
        name = _payload().get("name") or ""
        error = validate_required(name, "Name")
        if error:
            return jsonify({"error": error}), 400

        profile = _api().update_name(sanitize_string(name))
        session["user_name"] = profile.get("name") if isinstance(profile, dict) else sanitize_string(name)
        return jsonify(profile)

    @app.get("/api/profiles")
    @require_login
    def search_profiles():
        query = (request.args.get("query") or "").strip()
        if not query:
            return jsonify([])
        return jsonify(_api().search_profiles(query))

    @app.post("/api/profile/associate")
    @require_login
    def associate_profile():
        payload = _payload()
        real_profile_id = payload.get("realProfileId")
        anon_profile_id = payload.get("anonProfileId")
        if not real_profile_id or not anon_profile_id:
            return jsonify({"error": "missing_fields"}), 400

        _api().associate_profile(real_profile_id, anon_profile_id)
        return jsonify({"status": "associated"})

    # ---------- Friend requests ----------
    @app.post("/api/profiles/<profile_id>/friend-requests")
    @require_login
    def send_friend_request(profile_id: str):
        _api().send_friend_request(profile_id)
        return jsonify({"status": "sent"}), 201

    @app.get("/api/friend-requests/sent")
    @require_login
    def sent_friend_requests():
        return jsonify(_api().get_sent_friend_requests())

    @app.get("/api/friend-requests/received")
    @require_login
    def received_friend_requests():
        return jsonify(_api().get_received_friend_requests())

    @app.delete("/api/friend-requests/sent/<request_id>")
    @require_login
    def cancel_friend_request(request_id: str):
        _api().cancel_sent_friend_request(request_id)
        return jsonify({"status": "cancelled"})

    @app.delete("/api/friend-requests/received/<request_id>")
    @require_login
    def ignore_friend_request(request_id: str):
        _api().ignore_received_friend_request(request_id)
        return jsonify({"status": "ignored"})

    @app.patch("/api/friend-requests/received/<request_id>")
    @require_login
    def update_friend_request(request_id: str):
        command = request.args.get("command")
        if command == "block":
            _api().block_received_friend_request(request_id)
        elif command == "unblock":
            _api().unblock_received_friend_request(request_id)
        else:
            return jsonify({"error": "invalid_command"}), 400
        return jsonify({"status": f"{command}ed"})

    @app.post("/api/friend-requests/received/<request_id>")
    @require_login
    def accept_friend_request(request_id: str):
        return jsonify(_api().accept_received_friend_request(request_id)), 201

    # ---------- Friendships ----------
    @app.get("/api/friendships")
    @require_login
    def list_friendships():
        return jsonify(_api().get_friendships())

    @app.post("/api/friendships")
    @require_login
    def create_anonymous_friendship():
        name = _payload().get("name")
        error = validate_anonymous_friend_name(name)
        if error:
            return jsonify({"error": error}), 400

        _api().create_anonymous_friendship(sanitize_string(name))
        return jsonify({"status": "created"}), 201

    @app.get("/api/friendships/<friend_id>")
    @require_login
    def friend_details(friend_id: str):
        args = request.args
        error = (
            validate_numeric(args.get("minAmount"), "Minimum amount", min_value=0, required=False)
            or validate_numeric(args.get("maxAmount"), "Maximum amount", min_value=0, required=False)
            or validate_integer(args.get("page"), "Page", min_value=1, required=False)
            or validate_integer(args.get("limit"), "Limit", min_value=1, max_value=100, required=False)
        )
        if error:
            return jsonify({"error": error}), 400

        details = _api().get_friend_details(friend_id) or {}
        transactions = [DebtTransaction.from_payload(t) for t in details.get("transactions") or []]

        balance = friend_balance(transactions, get_currency_code())
        balance["text"] = balance_text(balance["netBalance"])
        balance["display"] = format_currency(abs(balance["netBalance"]))

        page_items, total = filter_transactions(
            transactions,
            type=args.get("type"),
            action=args.get("action"),
            status=args.get("status"),
            min_amount=args.get("minAmount"),
            max_amount=args.get("maxAmount"),
            page=_int_arg("page", 1),
            limit=_int_arg("limit", 20),
        )

        stats = friend_stats(transactions)
        stats["firstTransactionDisplay"] = _display_date(stats["firstTransactionDate"], format_date)
        stats["lastTransactionDisplay"] = _display_date(stats["lastTransactionDate"], format_date)

        details["balance"] = balance
        details["stats"] = stats
        details["transactions"] = [_transaction_payload(t) for t in page_items]
        details["matchingTransactions"] = total
        return jsonify(details)

    # ---------- Debts ----------
    @app.get("/api/transfer-methods")
    @require_login
    def transfer_methods():
        return jsonify(_api().get_transfer_methods())

    @app.get("/api/debts")
    @require_login
    def list_debts():
        return jsonify(_api().get_debt_transactions())

    @app.post("/api/debts")
    @require_login
    def create_debt():
        payload = _payload()
        friend_profile_id = payload.get("friendProfileId")
        action = payload.get("action") or "LEND"
        amount = payload.get("amount")
        transfer_method_id = payload.get("transferMethodId")

        error = validate_debt_transaction(friend_profile_id, action, amount, transfer_method_id)
        if error:
            return jsonify({"error": error}), 400

        body: Dict[str, Any] = {
            "friendProfileId": friend_profile_id,
            "action": action,
            "amount": float(parse_amount(amount)),
            "transferMethodId": transfer_method_id,
        }
        description = (payload.get("description") or "").strip()
        if description:
            body["description"] = description

        _api().create_debt_transaction(body)
        return jsonify({"status": "created"}), 201

    # ---------- Group expenses ----------
    @app.get("/api/group-expenses/fee-calculation-methods")
    @require_login
    def fee_calculation_methods():
        methods = _api().get_fee_calculation_methods()
        return jsonify([asdict(FeeCalculationMethod.from_payload(m)) for m in methods])

    @app.get("/api/group-expenses")
    @require_login
    def list_group_expenses():
        expenses = _api().get_created_group_expenses()
        for payload in expenses:
            if "items" in payload:
                _attach_summary(payload)
        return jsonify(expenses)

    @app.post("/api/group-expenses")
    @require_login
    def create_group_expense():
        payload = _payload()
        items = [ExpenseItem.from_payload(i) for i in payload.get("items") or []]
        fees = [OtherFee.from_payload(f) for f in payload.get("otherFees") or []]

        body = build_draft_request(
            payload.get("description") or "",
            items,
            fees,
            payer_profile_id=payload.get("payerProfileId"),
        )
        _api().create_draft_group_expense(body)
        app.logger.info("Created draft group expense totalling %s", body["totalAmount"])
        return jsonify({"status": "created", "totalAmount": body["totalAmount"]}), 201

    @app.get("/api/group-expenses/<expense_id>")
    @require_login
    def group_expense_details(expense_id: str):
        payload = _api().get_group_expense_details(expense_id)
        return jsonify(_attach_summary(payload))

    @app.patch("/api/group-expenses/<expense_id>/confirmed")
    @require_login
    def confirm_group_expense(expense_id: str):
        api = _api()
        expense = GroupExpense.from_payload(api.get_group_expense_details(expense_id))
        if not can_confirm(expense):
            return jsonify({"error": "expense_cannot_be_confirmed"}), 409

        updated = api.confirm_draft_group_expense(expense_id)
        return jsonify(_attach_summary(updated))

    @app.get("/api/group-expenses/<expense_id>/items/<item_id>")
    @require_login
    def expense_item_details(expense_id: str, item_id: str):
        payload = _api().get_expense_item_details(expense_id, item_id)
        item = ExpenseItem.from_payload(payload)
        payload["subtotal"] = decimal_text(item_subtotal(item))
        payload["sharePercentage"] = share_percentage(item.participants)
        payload["sharesValid"] = share_allocation_check(item.participants)
        return jsonify(payload)

    @app.post("/api/group-expenses/<expense_id>/items")
    @require_login
    def add_expense_item(expense_id: str):
        api = _api()
        locked = _ensure_editable(api, expense_id)
        if locked:
            return locked

        item = ExpenseItem.from_payload(_payload())
        error = validate_expense_item(item)
        if error:
            return jsonify({"error": error}), 400

        return jsonify(api.add_expense_item(expense_id, _item_body(item))), 201

    @app.put("/api/group-expenses/<expense_id>/items/<item_id>")
    @require_login
    def update_expense_item(expense_id: str, item_id: str):
        api = _api()
        locked = _ensure_editable(api, expense_id)
        if locked:
            return locked

        payload = _payload()
        item = ExpenseItem.from_payload(payload)
        if payload.get("splitEqually"):
            item.participants = apply_equal_split(item.participants)
        error = validate_expense_item(item) or share_allocation_error(item.participants)
        if error:
            return jsonify({"error": error}), 400

        body = _item_body(item, item.participants)
        return jsonify(api.update_expense_item(expense_id, item_id, body))

    @app.delete("/api/group-expenses/<expense_id>/items/<item_id>")
    @require_login
    def remove_expense_item(expense_id: str, item_id: str):
        api = _api()
        locked = _ensure_editable(api, expense_id)
        if locked:
            return locked

        api.remove_expense_item(expense_id, item_id)
        return jsonify({"status": "deleted"})

    @app.post("/api/group-expenses/<expense_id>/fees")
    @require_login
    def add_other_fee(expense_id: str):
        api = _api()
        locked = _ensure_editable(api, expense_id)
        if locked:
            return locked

        fee = OtherFee.from_payload(_payload())
        error = validate_other_fee(fee)
        if error:
            return jsonify({"error": error}), 400

        return jsonify(api.add_other_fee(expense_id, _fee_body(fee))), 201

    @app.put("/api/group-expenses/<expense_id>/fees/<fee_id>")
    @require_login
    def update_other_fee(expense_id: str, fee_id: str):
        api = _api()
        locked = _ensure_editable(api, expense_id)
        if locked:
            return locked

        fee = OtherFee.from_payload(_payload())
        error = validate_other_fee(fee)
        if error:
            return jsonify({"error": error}), 400

        return jsonify(api.update_other_fee(expense_id, fee_id, _fee_body(fee)))

    @app.delete("/api/group-expenses/<expense_id>/fees/<fee_id>")
    @require_login
    def remove_other_fee(expense_id: str, fee_id: str):
        api = _api()
        locked = _ensure_editable(api, expense_id)
        if locked:
            return locked

        api.remove_other_fee(expense_id, fee_id)
        return jsonify({"status": "deleted"})

    # ---------- Calculation preview ----------
    @app.post("/api/calculate")
    def calculate():
        payload = _payload()
        items = [ExpenseItem.from_payload(i) for i in payload.get("items") or []]
        fees = [OtherFee.from_payload(f) for f in payload.get("otherFees") or []]

        return jsonify(
            {
                "items": [
                    {
                        "name": item.name,
                        "subtotal": decimal_text(item_subtotal(item)),
                        "sharesValid": share_allocation_check(item.participants),
                    }
                    for item in items
                ],
                "itemsTotal": decimal_text(items_total(items)),
                "feesTotal": decimal_text(fees_total(fees)),
                "grandTotal": decimal_text(grand_total(items, fees)),
                "summary": expense_summary_text(items),
                "error": validate_group_expense(payload.get("description") or "", items, fees),
            }
        )

    @app.get("/api/equal-split/<int:count>")
    def get_equal_split(count: int):
        if count <= 0:
            return jsonify({"error": "invalid_participant_count"}), 400
        return jsonify({"share": decimal_text(equal_split(count))})

    # ---------- Bills ----------
    @app.get("/api/bills")
    @require_login
    def list_bills():
        return jsonify(_api().get_all_created_bills())

    @app.post("/api/bills")
    @require_login
    def upload_bill():
        bill = request.files.get("bill")
        payer_profile_id = request.form.get("payerProfileId") or session.get("profile_id")
        if bill is None or not bill.filename:
            return jsonify({"error": "missing_bill"}), 400
        if not payer_profile_id:
            return jsonify({"error": "missing_payer"}), 400

        filename = secure_filename(bill.filename)
        extension = os.path.splitext(filename)[1].lower()
        if extension not in ALLOWED_BILL_EXTENSIONS:
            return jsonify({"error": "unsupported_file_type"}), 400

        content = bill.read()
        if len(content) > config.BILL_MAX_BYTES:
            return jsonify({"error": "file_too_large"}), 413

        _api().upload_bill(
            payer_profile_id,
            filename,
            io.BytesIO(content),
            bill.mimetype or "application/octet-stream",
        )
        return jsonify({"status": "uploaded"}), 201

    @app.get("/api/bills/<bill_id>")
    @require_login
    def bill_details(bill_id: str):
        return jsonify(_api().get_bill_details(bill_id))

    @app.delete("/api/bills/<bill_id>")
    @require_login
    def delete_bill(bill_id: str):
        _api().delete_bill(bill_id)
        return jsonify({"status": "deleted"})


def _api(token: Optional[str] = None) -> ApiClient:
    factory = current_app.config["API_CLIENT_FACTORY"]
    return factory(token or session.get("auth_token"))


def _payload() -> Dict[str, Any]:
    payload = request.get_json(force=True, silent=True)
    return payload if isinstance(payload, dict) else {}


def _start_session(login_result: Dict[str, Any]) -> Dict[str, Any]:
    token = (login_result or {}).get("token")
    if not token:
        raise ApiError("Login response did not include a token", status=502)

    profile = _api(token).get_profile() or {}
    session.clear()
    session["auth_token"] = token
    session["profile_id"] = profile.get("profileId")
    session["user_name"] = profile.get("name")
    return {"authenticated": True, "user": {"profileId": profile.get("profileId"), "name": profile.get("name")}}


def _attach_summary(payload: Dict[str, Any]) -> Dict[str, Any]:
    expense = GroupExpense.from_payload(payload)
    summary = expense_summary(expense)
    payload["summary"] = summary
    # local edits make the server total stale
    payload["totalAmount"] = summary["grandTotal"]
    return payload


def _ensure_editable(api: ApiClient, expense_id: str) -> Optional[Tuple[Any, int]]:
    expense = GroupExpense.from_payload(api.get_group_expense_details(expense_id))
    if not can_edit(expense):
        return jsonify({"error": "expense_locked"}), 409
    return None


def _item_body(item: ExpenseItem, participants: Optional[List[ItemParticipant]] = None) -> Dict[str, Any]:
    return ExpenseItem(
        name=sanitize_string(item.name),
        amount=decimal_text(parse_amount(item.amount)),
        quantity=parse_quantity(item.quantity),
        participants=participants or [],
    ).to_payload()


def _fee_body(fee: OtherFee) -> Dict[str, Any]:
    return OtherFee(
        name=sanitize_string(fee.name),
        amount=decimal_text(parse_amount(fee.amount)),
        calculation_method=fee.calculation_method,
    ).to_payload()


def _int_arg(name: str, default: int) -> int:
    try:
        return int(float(request.args.get(name, default)))
    except (TypeError, ValueError):
        return default


def _display_date(value: Optional[str], formatter: Callable[[str], str] = format_smart_date) -> Optional[str]:
    if not value:
        return None
    try:
        return formatter(value)
    except ValueError:
        current_app.logger.debug("Unparseable timestamp %r", value)
        return None


def _transaction_payload(transaction: DebtTransaction) -> Dict[str, Any]:
    payload = transaction.to_payload()
    payload["amountDisplay"] = format_currency(transaction.amount)
    payload["createdAtDisplay"] = _display_date(transaction.created_at)
    return payload


app = create_app()


if __name__ == "__main__":
    app.run(debug=True)
