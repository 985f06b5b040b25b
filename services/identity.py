from dataclasses import dataclass


@dataclass(frozen=True)
class Player:
    """Who is acting. Name + level is the whole identity; nothing is verified."""

    name: str
    level: str

    @classmethod
    def from_input(cls, name, level) -> "Player":
        return cls(name=normalize_name(name), level=str(level or "").strip())

    def to_dict(self) -> dict:
        return {"name": self.name, "level": self.level}


def normalize_name(value) -> str:
    # collapse inner whitespace so "Sam  K" and "Sam K" are one player
    return " ".join(str(value or "").split())

