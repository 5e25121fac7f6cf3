"""
Offline console demo: runs booking conversations against in-memory stores.

Uses the real intent classifier, dialogue state machine, validator,
availability engine, and appointment service. No network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario slot_taken
"""

import argparse
import uuid

from vetbook.config import settings
from vetbook.conversation.chat_service import ChatService
from vetbook.conversation.datetime_extractor import DateTimeExtractor
from vetbook.storage import InMemoryAppointmentStore, InMemoryConversationStore
from vetbook.tools.booking import AppointmentService

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


class ConsoleSession:
    """One chat session in the terminal."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "Hi, I'd like to book an appointment for my dog",
            "Jane Doe",
            "Rex",
            "555-123-4567",
            "monday at 10am",
            "yes",
        ],
        "slot_taken": [
            "can I schedule a checkup?",
            "Sam Lee",
            "Milo",
            "+1 555 987 6543",
            "monday at 10am",
            "yes",
            "monday at 11am",
            "yes",
        ],
        "cancel": [
            "need an appt for my cat",
            "Alex Kim",
            "Luna",
            "0412 345 678",
            "friday afternoon",
            "maybe",
            "no",
        ],
        "chat": [
            "what are your opening hours?",
            "thanks!",
        ],
    }

    MAX_INPUT_LENGTH = 500

    def __init__(self) -> None:
        self.appointments = InMemoryAppointmentStore()
        self.service = AppointmentService(self.appointments)
        self.chat = ChatService(InMemoryConversationStore(), self.service)
        self.session_id = f"console-{uuid.uuid4().hex[:8]}"

    def bot_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[Assistant]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  VET BOOKING ASSISTANT - {title}{RESET}")
        print(f"{BOLD}  Clinic: {settings.clinic.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _seed_taken_slot(self) -> None:
        """Book Monday 10:00 for someone else so the scenario hits a conflict."""
        parsed = DateTimeExtractor().parse_date_time("monday at 10am")
        result = self.service.create_direct_appointment({
            "owner_name": "Walk-in Client",
            "pet_name": "Biscuit",
            "phone": "555-000-1111",
            "scheduled_date": parsed.scheduled_date.isoformat(),
            "scheduled_time_slot": parsed.time_slot,
            "source": "front-desk",
        })
        self.system_log(f"Seeded booking: {result.code or 'OK'} for {parsed.formatted}")

    def _send(self, text: str) -> None:
        reply = self.chat.process_message(self.session_id, text)
        color = GREEN if reply.success else RED
        print(f"{color}{BOLD}[Assistant]{RESET} {color}{reply.response}{RESET}")
        state = self.chat.get_booking_state(self.session_id)
        self.system_log(f"State: {state.status.value} (v{state.version})")
        if reply.appointment_id:
            self.system_log(f"Appointment stored: {reply.appointment_id}")
        if reply.error_code:
            self.system_log(f"{YELLOW}Code: {reply.error_code}{RESET}")

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        if scenario == "slot_taken":
            self._seed_taken_slot()
        self.bot_say(self.chat.initialize_session(self.session_id).response)

        for step in steps:
            print(f"\n{BLUE}[User] {RESET}{step}")
            self._send(step)

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        stats = self.service.get_statistics()
        print(f"{DIM}  Appointments: {stats.total} {stats.by_status}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def run(self) -> None:
        self._banner("Console Demo")
        print(f"{BOLD}  Type 'quit' to exit{RESET}")
        self.bot_say(self.chat.initialize_session(self.session_id).response)

        while True:
            user_input = input(f"\n{BLUE}[User] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.bot_say("That was quite long. Could you keep it brief for me?")
                continue
            self._send(user_input)


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
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
