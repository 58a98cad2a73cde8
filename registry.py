"""
Participant resolution for SplitLedger
"""
from __future__ import annotations
from typing import Dict, Iterable, List, Optional

from config import DEFAULT_EMOJI, DEFAULT_OWNER, MAX_NAME_LENGTH
from errors import ValidationCode, ValidationError
from models import Friend, Participant, ParticipantKind
from validation import sanitize_text, validate_email, validate_name, validate_phone


class ParticipantRegistry:
    """Maps participant ids (display names) to identities for one owner"""

    def __init__(self, self_name: str, friends: Iterable[Friend] = (), self_emoji: str = DEFAULT_EMOJI):
        self.self_name = sanitize_text(self_name, MAX_NAME_LENGTH) or DEFAULT_OWNER
        self.self_emoji = self_emoji or DEFAULT_EMOJI
        self._friends: Dict[str, Friend] = {f.name: f for f in friends if f.name != self.self_name}

    @property
    def self_participant(self) -> Participant:
        return Participant(self.self_name, ParticipantKind.SELF)

    @property
    def friends(self) -> List[Friend]:
        return list(self._friends.values())

    def is_self(self, participant_id: str) -> bool:
        return participant_id == self.self_name

    def friend(self, name: str) -> Optional[Friend]:
        return self._friends.get(name)

    def resolve(self, participant_id: str) -> Participant:
        """Any id resolves; names not in the friend list are free-text friends"""
        if self.is_self(participant_id):
            return self.self_participant
        return Participant(participant_id, ParticipantKind.FRIEND)

    def label(self, participant_id: str) -> str:
        if self.is_self(participant_id):
            return f"{self.self_emoji} {participant_id}"
        f = self.friend(participant_id)
        return f"{f.emoji if f else DEFAULT_EMOJI} {participant_id}"

    def dropdown_options(self) -> List[dict]:
        """Payer / split-with choices: owner first, then friends"""
        options = [{"label": self.label(self.self_name), "value": self.self_name}]
        options += [{"label": self.label(f.name), "value": f.name} for f in self._friends.values()]
        return options

    def validate_new_friend(self, name: str, emoji: str = "", email: str = "", phone: str = "") -> Friend:
        """Build a Friend from raw input, rejecting the owner's name and duplicates"""
        clean = validate_name(name, "name")
        if clean == self.self_name:
            raise ValidationError(ValidationCode.DUPLICATE_NAME, "You are already included by default.", "name")
        if any(existing.lower() == clean.lower() for existing in self._friends):
            raise ValidationError(ValidationCode.DUPLICATE_NAME, f"{clean} is already your friend.", "name")
        return Friend(
            name=clean,
            emoji=(emoji or "").strip() or DEFAULT_EMOJI,
            email=validate_email(email),
            phone=validate_phone(phone),
        )
