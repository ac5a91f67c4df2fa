"""Defines the checkers pieces"""

from dataclasses import dataclass, replace
from typing import Self

from src.core.exceptions import InvalidBoardError
from src.core.shared_types import Color, Rank

# lower case: normal piece, upper case: king
CHAR_TO_COLOR: dict[str, Color] = {"b": Color.BLACK, "w": Color.WHITE}
COLOR_TO_CHAR: dict[Color, str] = {value: key for key, value in CHAR_TO_COLOR.items()}


@dataclass(frozen=True)
class Piece:
    color: Color
    rank: Rank = Rank.NORMAL

    @property
    def is_king(self) -> bool:
        return self.rank == Rank.KING

    def promoted(self) -> Self:
        """Promotion replaces the piece, it never mutates it."""
        return replace(self, rank=Rank.KING)

    @classmethod
    def from_char(cls, character: str) -> Self:
        if character.lower() not in CHAR_TO_COLOR:
            raise InvalidBoardError(f"Unknown piece character: {character!r}")
        rank = Rank.KING if character.isupper() else Rank.NORMAL
        return cls(CHAR_TO_COLOR[character.lower()], rank)

    def to_char(self) -> str:
        character = COLOR_TO_CHAR[self.color]
        return character.upper() if self.is_king else character

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> Self:
        try:
            return cls(Color(data["color"]), Rank(data.get("rank", Rank.NORMAL)))
        except (KeyError, ValueError) as exc:
            raise InvalidBoardError(f"Cannot interpret piece {data!r}") from exc

    def to_dict(self) -> dict[str, str]:
        return {"color": self.color.value, "rank": self.rank.value}
