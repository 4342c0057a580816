"""
Offline console demo: runs the booking engine against an in-memory store.

Seeds one store with two services and a couple of coupons, then either
auto-plays a scripted scenario or accepts simple commands. No database,
no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario conflict
    python console_demo.py --scenario coupon
"""

import argparse
import datetime as dt
import shlex
from decimal import Decimal
from typing import Optional

from booking_engine.booking.service import BookingService
from booking_engine.config import settings
from booking_engine.errors import BookingError
from booking_engine.logging_context import new_request_id
from booking_engine.repository.memory import InMemoryRepository
from booking_engine.scheduling.lifecycle import StatusTrigger
from booking_engine.schemas.appointment_schema import BookingRequest, ClientIdentity
from booking_engine.schemas.coupon_schema import Coupon, CouponType
from booking_engine.schemas.store_schema import Service, Store
from booking_engine.utils import format_time, parse_time

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_STORE_ID = "store-demo"


def next_open_day(today: dt.date) -> dt.date:
    """First weekday strictly after ``today`` (default hours close on weekends)."""
    day = today + dt.timedelta(days=1)
    while day.weekday() >= 5:
        day += dt.timedelta(days=1)
    return day


def seed_repository(repository: InMemoryRepository) -> None:
    now = dt.datetime.now()
    repository.add_store(Store(id=DEMO_STORE_ID, name="Barbearia Central"))
    repository.add_service(Service(
        id="svc-corte", store_id=DEMO_STORE_ID, name="Corte", duration_minutes=30,
        price=Decimal("45.00"),
    ))
    repository.add_service(Service(
        id="svc-combo", store_id=DEMO_STORE_ID, name="Corte + Barba", duration_minutes=60,
        price=Decimal("80.00"),
    ))
    repository.add_coupon(Coupon(
        code="BEMVINDO", store_id=DEMO_STORE_ID, type=CouponType.PERCENTAGE,
        value=Decimal("20"), max_discount=Decimal("15.00"), start_date=now,
        end_date=now + dt.timedelta(days=60), user_usage_limit=1,
    ))
    repository.add_coupon(Coupon(
        code="ULTIMO", store_id=DEMO_STORE_ID, type=CouponType.FIXED_AMOUNT,
        value=Decimal("10.00"), usage_limit=1, start_date=now,
    ))


class ConsoleSession:
    """Drives a BookingService from the terminal."""

    def __init__(self) -> None:
        self.repository = InMemoryRepository()
        seed_repository(self.repository)
        self.service = BookingService(self.repository)
        self.day = next_open_day(dt.date.today())
        self._last_booked: Optional[str] = None

    def engine_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[engine]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def error_say(self, exc: BookingError) -> None:
        print(f"{RED}{BOLD}[{exc.code}]{RESET} {RED}{exc.message}{RESET}")

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "slots svc-combo",
            "book svc-combo 10:00 'Maria Silva' 11987654321",
            "slots svc-combo",
        ],
        "conflict": [
            "book svc-combo 14:00 'Ana Souza' 11911112222",
            "book svc-corte 14:30 'Bruno Lima' 11933334444",
            "cancel last",
            "book svc-corte 14:30 'Bruno Lima' 11933334444",
            "book svc-corte 15:00 'Caio Melo' 11922223333",
        ],
        "coupon": [
            "quote BEMVINDO 80",
            "book svc-combo 09:00 'Carla Dias' 11955556666 BEMVINDO user-carla",
            "book svc-combo 11:00 'Carla Dias' 11955556666 BEMVINDO user-carla",
            "book svc-corte 16:00 'Davi Rocha' 11977778888 ULTIMO",
            "book svc-corte 16:30 'Eva Nunes' 11999990000 ULTIMO",
        ],
    }

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        for step in steps:
            print(f"\n{BLUE}[client] {RESET}{step}")
            self._process_command(step)
        self._summary()

    def run(self) -> None:
        self._banner("Console Demo")
        print(f"{DIM}  Commands: slots SERVICE | book SERVICE HH:MM NAME PHONE [COUPON [USER]]{RESET}")
        print(f"{DIM}            quote CODE AMOUNT | cancel ID|last | confirm ID | quit{RESET}")

        while True:
            command = input(f"\n{BLUE}[client] {RESET}").strip()
            if not command:
                continue
            if command.lower() in ("quit", "exit", "q"):
                break
            self._process_command(command)
        self._summary()

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  BOOKING ENGINE - {title}{RESET}")
        print(f"{BOLD}  Engine: {settings.engine_name} | Day: {self.day.isoformat()}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _summary(self) -> None:
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        for appt in sorted(self.repository.all_appointments(), key=lambda a: a.start_time):
            print(
                f"{DIM}  {appt.id} {format_time(appt.start_time)}-{format_time(appt.end_time)} "
                f"{appt.client_name:<12} {appt.status.value:<10} R$ {appt.total_price}{RESET}"
            )
        print(f"{DIM}  Coupon usages recorded: {len(self.repository.coupon_usages())}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _process_command(self, command: str) -> None:
        parts = shlex.split(command)
        if not parts:
            return
        name, args = parts[0].lower(), parts[1:]
        request_id = new_request_id()
        self.system_log(f"request {request_id}")
        handlers = {
            "slots": self._cmd_slots,
            "book": self._cmd_book,
            "quote": self._cmd_quote,
            "cancel": self._cmd_cancel,
            "confirm": self._cmd_confirm,
        }
        handler = handlers.get(name)
        if handler is None:
            print(f"{YELLOW}Unknown command '{name}'{RESET}")
            return
        try:
            handler(args)
        except BookingError as exc:
            self.error_say(exc)
        except (IndexError, ValueError) as exc:
            print(f"{YELLOW}Invalid arguments: {exc}{RESET}")

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #

    def _cmd_slots(self, args: list[str]) -> None:
        slots = self.service.generate_slots(DEMO_STORE_ID, args[0], self.day)
        free = [format_time(s.time) for s in slots if s.available]
        taken = [format_time(s.time) for s in slots if not s.available]
        self.engine_say(f"{len(free)} free: {', '.join(free) or '-'}")
        if taken:
            self.system_log(f"taken: {', '.join(taken)}")

    def _cmd_book(self, args: list[str]) -> None:
        start = parse_time(args[1])
        if start is None:
            raise ValueError(f"bad time {args[1]!r}")
        coupon: Optional[str] = args[4] if len(args) > 4 else None
        user_id: Optional[str] = args[5] if len(args) > 5 else None
        request = BookingRequest(
            store_id=DEMO_STORE_ID,
            service_id=args[0],
            date=self.day,
            start_time=start,
            client=ClientIdentity(user_id=user_id, name=args[2], phone=args[3]),
            coupon_code=coupon,
        )
        outcome = self.service.validate_and_book(request)
        appt = outcome.appointment
        self._last_booked = appt.id
        self.engine_say(
            f"Booked {appt.id} {format_time(appt.start_time)}-{format_time(appt.end_time)} "
            f"total R$ {outcome.result.total_price} (discount R$ {outcome.result.discount_amount})"
        )
        for warning in outcome.warnings:
            print(f"{YELLOW}  warning [{warning.stage}]: {warning.message}{RESET}")

    def _cmd_quote(self, args: list[str]) -> None:
        quote = self.service.quote_coupon(args[0], DEMO_STORE_ID, Decimal(args[1]))
        self.engine_say(
            f"{quote.code}: R$ {quote.original_amount} -> R$ {quote.final_amount} "
            f"({quote.discount_percentage}% off)"
        )

    def _resolve_id(self, raw: str) -> str:
        if raw == "last":
            return self._last_booked or ""
        return raw

    def _cmd_cancel(self, args: list[str]) -> None:
        appt = self.service.cancel_appointment(self._resolve_id(args[0]))
        self.engine_say(f"{appt.id} is now {appt.status.value}")

    def _cmd_confirm(self, args: list[str]) -> None:
        appt = self.service.update_status(self._resolve_id(args[0]), StatusTrigger.CONFIRM)
        self.engine_say(f"{appt.id} is now {appt.status.value}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline booking engine demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
