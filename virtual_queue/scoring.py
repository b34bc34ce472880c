from dataclasses import dataclass
from datetime import datetime

from .models import QueueEntry, QueueSettings
from .timeutils import from_storage

MAX_WAIT_MINUTES = 60


@dataclass
class ScoredEntry:
    entry: QueueEntry
    queue_index: int
    score: float


def priority_score(settings: QueueSettings, travel_minutes: int, queue_index: int, wait_minutes: float) -> float:
    wait = min(max(wait_minutes, 0), MAX_WAIT_MINUTES)
    return (settings.eta_weight * (100 - travel_minutes)
            + settings.position_weight * (100 - queue_index)
            + settings.wait_time_bonus * wait)


def score_entries(entries: list[QueueEntry], settings: QueueSettings, now: datetime) -> list[ScoredEntry]:
    """Pontua as entradas na ordem FIFO recebida (maior = mais urgente)."""
    scored = []
    for index, entry in enumerate(entries):
        waited = (now - from_storage(entry.created_at)).total_seconds() / 60
        score = priority_score(settings, entry.travel_minutes or 0, index, waited)
        scored.append(ScoredEntry(entry=entry, queue_index=index, score=score))
    return scored


def by_priority(scored: list[ScoredEntry]) -> list[ScoredEntry]:
    # sort estável: empate mantém a ordem FIFO
    return sorted(scored, key=lambda s: s.score, reverse=True)
