"""Internal staff messaging."""
import uuid
from typing import List

from clinicflow import config
from clinicflow.app_state import ClinicState
from clinicflow.commands import Command, CommandAction, CommandIssuer, CommandResult, FieldError
from clinicflow.models import Message, User, utc_now


class Messenger:
    """One-to-one conversations between staff members."""

    def __init__(self, issuer: CommandIssuer, state: ClinicState):
        self.issuer = issuer
        self.state = state

    def send(self, sender: User, receiver_email: str, text: str) -> CommandResult:
        """Send ``text``. Blank messages are not sent."""
        text = (text or "").strip()
        if not text:
            return CommandResult.invalid([FieldError("text", "Message is empty", "required")], "Message is empty")
        if self.state.user(receiver_email) is None:
            return CommandResult.failure("not_found", f"User {receiver_email} not found")

        message = Message(
            id=uuid.uuid4().hex,
            sender_email=sender.email,
            receiver_email=receiver_email,
            text=text,
            timestamp=utc_now(),
        )
        return self.issuer.issue(
            Command(
                collection=config.MESSAGES,
                action=CommandAction.CREATE,
                key=message.id,
                data=message.model_dump(mode="json"),
            )
        )

    def conversation(self, first_email: str, second_email: str) -> List[Message]:
        """Messages exchanged between two users, oldest first."""
        participants = {first_email, second_email}
        messages = [
            m for m in self.state.messages
            if {m.sender_email, m.receiver_email} == participants
            and m.sender_email != m.receiver_email
        ]
        return sorted(messages, key=lambda m: m.timestamp)

    def contacts(self, me: User) -> List[User]:
        """Everyone except ``me``."""
        return sorted(
            (u for u in self.state.users if u.email != me.email),
            key=lambda u: u.name.lower()
        )
