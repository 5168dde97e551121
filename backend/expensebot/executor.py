"""Run parsed chat commands against storage and compose the reply."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from . import crud, reports
from .categories import categorize, validate_category
from .clock import local_now, month_window, today_window, week_window
from .config import Settings, get_settings
from .db import SessionLocal
from .parser import (
    AddExpense,
    AddRecurring,
    BudgetStatus,
    Command,
    Edit,
    Export,
    Invalid,
    ListRecurring,
    ResetPin,
    SetBudget,
    SetCurrency,
    SetPin,
    Shortcut,
    ShortcutKind,
    StopRecurring,
    Unknown,
    parse,
)
from .security import generate_pin, hash_pin
from .tokens import TokenService, get_token_service

logger = logging.getLogger(__name__)

GENERIC_ERROR = "❌ Sorry, something went wrong. Please try again."
RECENT_LIMIT = 5

CURRENCY_SYMBOLS: dict[str, str] = {
    "usd": "$",
    "sgd": "S$",
    "aud": "A$",
    "cad": "C$",
    "nzd": "NZ$",
    "hkd": "HK$",
    "eur": "€",
    "gbp": "£",
    "inr": "₹",
    "jpy": "¥",
    "cny": "¥",
    "krw": "₩",
    "myr": "RM",
    "idr": "Rp",
    "thb": "฿",
    "php": "₱",
    "vnd": "₫",
    "rub": "₽",
    "try": "₺",
    "brl": "R$",
    "chf": "CHF ",
}


def currency_symbol_for(code: str) -> str | None:
    """Display symbol for an ISO code or a literal symbol such as ``€``."""
    value = code.strip()
    symbol = CURRENCY_SYMBOLS.get(value.lower())
    if symbol is not None:
        return symbol
    if value in set(CURRENCY_SYMBOLS.values()) or (
        0 < len(value) <= 3 and not any(char.isalnum() for char in value)
    ):
        return value
    return None


class CommandExecutor:
    """Executes one command per message inside its own database session."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        tokens: TokenService,
        settings: Settings | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.tokens = tokens
        self.settings = settings or get_settings()
        self.now = now or (lambda: local_now(self.settings.timezone))
        self._handlers: dict[type, Callable[[Session, str, object], str | None]] = {
            AddExpense: self._add_expense,
            Shortcut: self._shortcut,
            SetPin: self._set_pin,
            ResetPin: self._reset_pin,
            SetBudget: self._set_budget,
            BudgetStatus: self._budget_status,
            AddRecurring: self._add_recurring,
            ListRecurring: self._list_recurring,
            StopRecurring: self._stop_recurring,
            Edit: self._edit,
            Export: self._export,
            SetCurrency: self._set_currency,
        }

    def handle_message(self, owner_id: str, display_name: str | None, text: str) -> str | None:
        """Parse ``text`` from ``owner_id`` and return the reply, or None for silence."""
        command = parse(text)
        if isinstance(command, Unknown):
            return None
        try:
            with self.session_factory() as db:
                created = crud.get_user(db, owner_id) is None
                crud.upsert_user(db, owner_id, display_name)
        except SQLAlchemyError:
            logger.exception("Failed to register user %s", owner_id)
            return GENERIC_ERROR
        if created:
            logger.info("Registered new chat user %s", owner_id)
        return self.execute(owner_id, command)

    def execute(self, owner_id: str, command: Command) -> str | None:
        if isinstance(command, Unknown):
            return None
        if isinstance(command, Invalid):
            return f"❌ {command.reason}"
        handler = self._handlers[type(command)]
        try:
            with self.session_factory() as db:
                return handler(db, owner_id, command)
        except SQLAlchemyError:
            logger.exception("Command %s failed for %s", type(command).__name__, owner_id)
            return GENERIC_ERROR

    def _symbol(self, db: Session, owner_id: str) -> str:
        user = crud.get_user(db, owner_id)
        if user is None or not user.currency_symbol:
            return self.settings.default_currency_symbol
        return user.currency_symbol

    def _add_expense(self, db: Session, owner_id: str, command: AddExpense) -> str:
        if command.category is None:
            category = categorize(command.description)
        else:
            category = validate_category(command.category)
        now = self.now()
        expense = crud.create_expense(db, owner_id, command.description, command.amount, category, now)
        today = crud.period_totals(db, owner_id, today_window(now))
        summary = crud.budget_summary(db, owner_id, now)
        return reports.expense_added(expense, today, summary, self._symbol(db, owner_id))

    def _shortcut(self, db: Session, owner_id: str, command: Shortcut) -> str:
        now = self.now()
        symbol = self._symbol(db, owner_id)
        kind = command.kind
        if kind == ShortcutKind.TODAY:
            totals = crud.period_totals(db, owner_id, today_window(now))
            return reports.period_summary("Today's Summary", totals, symbol)
        if kind == ShortcutKind.WEEK:
            totals = crud.period_totals(db, owner_id, week_window(now))
            return reports.period_summary("Weekly Summary (Last 7 days)", totals, symbol)
        if kind == ShortcutKind.MONTH:
            totals = crud.period_totals(db, owner_id, month_window(now))
            summary = crud.budget_summary(db, owner_id, now)
            return reports.period_summary("Monthly Summary", totals, symbol, summary)
        if kind == ShortcutKind.DELETE_LAST:
            deleted = crud.delete_last_expense(db, owner_id)
            if deleted is None:
                return "❌ Nothing to delete."
            return f"🗑️ Deleted: {deleted.description} - {reports.format_money(deleted.amount, symbol)}"
        if kind == ShortcutKind.DASHBOARD:
            return self._dashboard_link(db, owner_id)
        if kind == ShortcutKind.RECENT:
            expenses = crud.list_expenses(db, owner_id, limit=RECENT_LIMIT)
            return reports.recent_expenses(expenses, symbol)
        if kind == ShortcutKind.BREAKDOWN:
            expenses = crud.list_expenses(db, owner_id, window=month_window(now))
            aggregated = crud.aggregate_expenses(expenses)
            return reports.category_breakdown(aggregated["category_totals"], symbol)
        return reports.HELP_TEXT

    def _dashboard_link(self, db: Session, owner_id: str) -> str:
        user = crud.get_user(db, owner_id)
        if self.settings.require_pin_for_dashboard and (user is None or not user.pin_hash):
            return (
                "⚠️ Please set a PIN first for dashboard security!\n\n"
                "Send: pin 1234\n(Use any 4 digits you'll remember)"
            )
        record = self.tokens.issue_access_token(owner_id)
        url = f"{self.settings.dashboard_url.rstrip('/')}/?token={record.token}"
        minutes = self.settings.access_token_expire_minutes
        return f"🔗 Your Dashboard:\n{url}\n\n⏰ Link expires in {minutes} minutes."

    def _set_pin(self, db: Session, owner_id: str, command: SetPin) -> str:
        crud.set_pin_hash(db, owner_id, hash_pin(command.pin))
        return (
            "🔒 PIN set successfully!\n\n"
            "Now you can access your dashboard securely.\nSend \"dashboard\" to get your link."
        )

    def _reset_pin(self, db: Session, owner_id: str, command: ResetPin) -> str:
        new_pin = generate_pin()
        crud.set_pin_hash(db, owner_id, hash_pin(new_pin))
        return (
            f"🔑 Your new PIN is: *{new_pin}*\n\n"
            "Please remember this PIN!\nYou can change it anytime by sending: pin XXXX"
        )

    def _set_budget(self, db: Session, owner_id: str, command: SetBudget) -> str:
        crud.set_budget(db, owner_id, command.amount)
        symbol = self._symbol(db, owner_id)
        return (
            f"💼 Monthly budget set to: {reports.format_money(command.amount, symbol)}\n\n"
            "I'll alert you when you reach 80% and 100%!"
        )

    def _budget_status(self, db: Session, owner_id: str, command: BudgetStatus) -> str:
        summary = crud.budget_summary(db, owner_id, self.now())
        return reports.budget_status(summary, self._symbol(db, owner_id))

    def _add_recurring(self, db: Session, owner_id: str, command: AddRecurring) -> str:
        category = validate_category(command.category)
        template = crud.create_recurring(
            db, owner_id, command.description, command.amount, category, command.day_of_month
        )
        symbol = self._symbol(db, owner_id)
        return (
            f"🔄 Recurring expense added! (#{template.id})\n\n"
            f"📝 {template.description}\n"
            f"💰 {reports.format_money(template.amount, symbol)} ({category.value})\n"
            f"📅 Every month on day {template.day_of_month}"
        )

    def _list_recurring(self, db: Session, owner_id: str, command: ListRecurring) -> str:
        templates = crud.list_recurring(db, owner_id)
        return reports.recurring_list(templates, self._symbol(db, owner_id))

    def _stop_recurring(self, db: Session, owner_id: str, command: StopRecurring) -> str:
        stopped = crud.deactivate_recurring(db, command.id, owner_id)
        if stopped is None:
            return "❌ Recurring expense not found."
        return f"✅ Stopped recurring: {stopped.description}"

    def _edit(self, db: Session, owner_id: str, command: Edit) -> str:
        category = validate_category(command.category)
        updated = crud.update_expense(
            db,
            command.id,
            owner_id,
            description=command.description,
            amount=command.amount,
            category=category,
        )
        if updated is None:
            return "❌ Expense not found or you cannot edit it."
        symbol = self._symbol(db, owner_id)
        return (
            f"✏️ Updated expense #{updated.id}:\n"
            f"{updated.description} - {reports.format_money(updated.amount, symbol)} ({category.value})"
        )

    def _export(self, db: Session, owner_id: str, command: Export) -> str:
        now = self.now()
        expenses = crud.list_expenses(db, owner_id, window=month_window(now))
        return reports.export_message(expenses, now)

    def _set_currency(self, db: Session, owner_id: str, command: SetCurrency) -> str:
        symbol = currency_symbol_for(command.code)
        if symbol is None:
            return f"❌ Unknown currency: {command.code.upper()}"
        crud.set_currency_symbol(db, owner_id, symbol)
        return f"💱 Currency set to {symbol}. Example: {reports.format_money(Decimal('12.50'), symbol)}"


def build_executor(tokens: TokenService | None = None) -> CommandExecutor:
    """Executor wired to the configured database and token backend."""
    return CommandExecutor(SessionLocal, tokens or get_token_service())

