"""
Display preferences: user name and the wallet card look.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional


class CardIcon(str, Enum):
    """The closed set of icons a wallet card can carry."""
    SUN = "sun"
    STAR = "star"
    ROCKET = "rocket"
    BOLT = "bolt"
    ASTRONAUT = "astronaut"

    @property
    def glyph(self) -> str:
        """Icon-font glyph name used by front-ends."""
        if self is CardIcon.SUN:
            return "fa-sun"
        elif self is CardIcon.STAR:
            return "fa-star"
        elif self is CardIcon.ROCKET:
            return "fa-rocket"
        elif self is CardIcon.BOLT:
            return "fa-bolt"
        elif self is CardIcon.ASTRONAUT:
            return "fa-user-astronaut"
        raise AssertionError(f"Unhandled card icon: {self}")


DEFAULT_CARD_COLOR = "#6366f1"
DEFAULT_CARD_ICON = CardIcon.SUN


@dataclass
class Preferences:
    """Non-secret display settings kept next to the wallet secret."""
    user_name: Optional[str] = None
    card_color: str = DEFAULT_CARD_COLOR
    card_icon: CardIcon = DEFAULT_CARD_ICON
    onboarding_complete: bool = False

    def to_dict(self) -> dict:
        d = asdict(self)
        d["card_icon"] = self.card_icon.value
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Preferences":
        try:
            icon = CardIcon(data.get("card_icon", DEFAULT_CARD_ICON.value))
        except ValueError:
            icon = DEFAULT_CARD_ICON
        return cls(
            user_name=data.get("user_name"),
            card_color=data.get("card_color") or DEFAULT_CARD_COLOR,
            card_icon=icon,
            onboarding_complete=bool(data.get("onboarding_complete", False)),
        )
