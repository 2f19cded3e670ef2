"""
Class taxonomy and promotion rules for senior (S1-S6) classes.

Everything here is a pure lookup over constant tables:
- rank -> level (O-Level for S1-S4, A-Level for S5-S6)
- rank -> stream options (A-Level classes must pick Sciences or Arts)
- (rank, stream) -> class name, e.g. "S.5 Sciences"
- rank -> next rank in the progression, ending in graduation after S6

Rank strings coming from forms and query strings are parsed once with
Rank.parse(); unknown values never raise, they fall through to the
O-Level branch.
"""
from typing import List, NamedTuple, Optional

from django.db import models


class Rank(models.TextChoices):
    S1 = 'S1', 'Senior 1'
    S2 = 'S2', 'Senior 2'
    S3 = 'S3', 'Senior 3'
    S4 = 'S4', 'Senior 4'
    S5 = 'S5', 'Senior 5'
    S6 = 'S6', 'Senior 6'

    @classmethod
    def parse(cls, value) -> Optional['Rank']:
        """Return the Rank for a case-insensitive string, or None."""
        if not value or not isinstance(value, str):
            return None
        try:
            return cls(value.upper())
        except ValueError:
            return None

    @property
    def number(self) -> int:
        return int(self.value[1:])


class Level(models.TextChoices):
    O_LEVEL = 'O', 'O-Level'
    A_LEVEL = 'A', 'A-Level'


class RankOption(NamedTuple):
    rank: str
    level: str
    description: str
    requires_stream: bool


class StreamOption(NamedTuple):
    value: Optional[str]
    label: str


class Promotion(NamedTuple):
    """Outcome of moving a class rank one year forward."""
    PROMOTE = 'promote'
    GRADUATE = 'graduate'
    UNRECOGNIZED = 'unrecognized'

    status: str
    next_rank: Optional[Rank]

    @property
    def is_graduation(self) -> bool:
        return self.status == self.GRADUATE


A_LEVEL_RANKS = frozenset({Rank.S5, Rank.S6})

A_LEVEL_STREAMS = ('Sciences', 'Arts')

# Streams D and beyond are not offered; classes are split into at most three.
O_LEVEL_STREAMS = ('A', 'B', 'C')

PROMOTION_PATH = {
    Rank.S1: Rank.S2,
    Rank.S2: Rank.S3,
    Rank.S3: Rank.S4,
    Rank.S4: Rank.S5,
    Rank.S5: Rank.S6,
    Rank.S6: None,
}

_RANK_DESCRIPTIONS = {
    Rank.S1: 'Senior 1 (O-Level)',
    Rank.S2: 'Senior 2 (O-Level)',
    Rank.S3: 'Senior 3 (O-Level)',
    Rank.S4: 'Senior 4 (O-Level Final)',
    Rank.S5: 'Senior 5 (A-Level)',
    Rank.S6: 'Senior 6 (A-Level Final)',
}

# Final year of each level carries the level name on promotion screens
_PROMOTION_RANK_LABELS = {
    Rank.S4: 'Senior 4 (O-Level)',
    Rank.S6: 'Senior 6 (A-Level)',
}

_TERM_LABELS = {
    'T1': 'Term 1',
    'T2': 'Term 2',
    'T3': 'Term 3',
    '1': 'Term 1',
    '2': 'Term 2',
    '3': 'Term 3',
}


def _is_a_level(rank) -> bool:
    return Rank.parse(rank) in A_LEVEL_RANKS


def rank_requires_stream(rank) -> bool:
    """True only for A-Level ranks (S5, S6), which must choose a stream."""
    return _is_a_level(rank)


def level_from_rank(rank) -> str:
    """Return 'A' for S5/S6 and 'O' for everything else."""
    if _is_a_level(rank):
        return Level.A_LEVEL.value
    return Level.O_LEVEL.value


def available_ranks() -> List[RankOption]:
    """Catalogue of creatable ranks, ordered S1 to S6."""
    return [
        RankOption(
            rank=rank.value,
            level=level_from_rank(rank),
            description=_RANK_DESCRIPTIONS[rank],
            requires_stream=rank_requires_stream(rank),
        )
        for rank in Rank
    ]


def available_streams(rank) -> List[StreamOption]:
    """
    Stream choices for a rank.

    A-Level ranks get exactly Sciences and Arts. Any other value,
    including an empty or unknown rank, gets the optional O-Level streams.
    """
    if _is_a_level(rank):
        return [StreamOption(value=stream, label=stream) for stream in A_LEVEL_STREAMS]

    options = [StreamOption(value=None, label='No Stream')]
    options.extend(
        StreamOption(value=stream, label=f'Stream {stream}') for stream in O_LEVEL_STREAMS
    )
    return options


def generate_class_name(rank, stream=None) -> str:
    """
    Build the display name of a class: S5 + Sciences -> "S.5 Sciences".

    An empty rank gives an empty name. Recognised ranks are normalised
    first, so "s5" also reads "S.5"; only unrecognised values get the
    literal first-"S" rewrite.
    """
    if not rank:
        return ''

    parsed = Rank.parse(rank)
    if parsed is not None:
        base_name = f'S.{parsed.number}'
    else:
        base_name = str(rank).replace('S', 'S.', 1)

    if stream:
        return f'{base_name} {stream}'
    return base_name


def next_rank(rank) -> Optional[Rank]:
    """Next rank in the progression; None after S6 and for unknown ranks."""
    parsed = Rank.parse(rank)
    if parsed is None:
        return None
    return PROMOTION_PATH[parsed]


def promotion_for(rank) -> Promotion:
    """Like next_rank(), but tells graduation apart from an unknown rank."""
    parsed = Rank.parse(rank)
    if parsed is None:
        return Promotion(status=Promotion.UNRECOGNIZED, next_rank=None)
    successor = PROMOTION_PATH[parsed]
    if successor is None:
        return Promotion(status=Promotion.GRADUATE, next_rank=None)
    return Promotion(status=Promotion.PROMOTE, next_rank=successor)


def is_graduating_rank(rank) -> bool:
    return Rank.parse(rank) == Rank.S6


def is_o_to_a_level_transition(rank) -> bool:
    return Rank.parse(rank) == Rank.S4


def format_rank_display(rank):
    """'S3' -> 'Senior 3'. Unknown values are returned unchanged."""
    parsed = Rank.parse(rank)
    if parsed is None:
        return rank
    return parsed.label


def promotion_rank_display(rank):
    """Rank label for promotion screens; final years name their level."""
    parsed = Rank.parse(rank)
    if parsed is None:
        return rank
    return _PROMOTION_RANK_LABELS.get(parsed, parsed.label)


def level_display_name(value):
    """Accepts either a level code ('O', 'A') or a rank."""
    if isinstance(value, str) and value.upper() in Level.values:
        return Level(value.upper()).label
    return promotion_rank_display(value)


def format_term(term):
    """'T2' or '2' -> 'Term 2'. Unknown values are returned unchanged."""
    return _TERM_LABELS.get(str(term), term)


def generate_initials(first_name, last_name) -> str:
    first = (first_name or '').strip()[:1].upper()
    last = (last_name or '').strip()[:1].upper()
    return f'{first}{last}'
