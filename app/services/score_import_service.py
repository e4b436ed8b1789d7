"""
Score import: replaces a competition's whole score set from an uploaded CSV.

The upload is parsed and validated completely before anything is written.
The delete of the previous generation and the insert of the new one then run
as one shard transaction inside the tenant lock, so no reader ever sees a
half-replaced score set.
"""
import csv
import io
import logging
import re
import time
from dataclasses import dataclass, field

from sqlalchemy import select, delete, update

from app.errors import ValidationError, ConflictError
from app.models.competition import Competition
from app.models.player import Player
from app.models.playerScore import PlayerScore
from app.services.competition_service import get_competition_or_404
from app.services.id_service import dispense_id
from app.services.tenant_lock import tenant_lock

logger = logging.getLogger(__name__)

EXPECTED_HEADER = ["player_id", "score"]

_INT_RE = re.compile(r"^[+-]?[0-9]+$")
_SCORE_MAX = 2 ** 63 - 1
_SCORE_MIN = -(2 ** 63)


@dataclass
class ScoreImported:
    """Published after a successful import; carries the generation it created."""
    tenant_id: int
    competition_id: str
    generation: int
    player_ids: list = field(default_factory=list)


def parse_score(raw):
    """Base-10 integer literal, optionally signed, nothing else."""
    if raw is None or not _INT_RE.match(raw):
        raise ValidationError(f"invalid score: {raw!r}")
    value = int(raw, 10)
    if not _SCORE_MIN <= value <= _SCORE_MAX:
        raise ValidationError(f"score out of range: {raw!r}")
    return value


def parse_score_csv(stream):
    """
    Parse an upload into ``[(player_id, score), ...]`` in file order.

    ``stream`` may be bytes, str or a binary/text file object. Any malformed
    header, row shape or score rejects the whole upload.
    """
    if hasattr(stream, "read"):
        stream = stream.read()
    if isinstance(stream, bytes):
        try:
            stream = stream.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("scores must be UTF-8 encoded")

    reader = csv.reader(io.StringIO(stream, newline=""))
    header = next(reader, None)
    if header != EXPECTED_HEADER:
        raise ValidationError("invalid CSV headers")

    rows = []
    for line_no, row in enumerate(reader, start=2):
        if len(row) != 2:
            raise ValidationError(f"row must have two columns: line {line_no}")
        player_id, score_str = row
        rows.append((player_id, parse_score(score_str)))
    return rows


def _ensure_players_exist(shard, tenant_id, rows):
    wanted = {player_id for player_id, _ in rows}
    if not wanted:
        return
    found = set(shard.execute(
        select(Player.id).where(Player.tenant_id == tenant_id, Player.id.in_(wanted))
    ).scalars())
    for player_id, _ in rows:
        if player_id not in found:
            raise ValidationError(f"player not found: {player_id}")


def replace_scores(directory, shard, tenant_id, competition_id, rows):
    """
    Delete every score row of the competition and insert ``rows`` as the new
    generation. Must run inside the tenant lock. Returns the new generation
    and every player whose score list changed (previous and new rows).
    """
    _ensure_players_exist(shard, tenant_id, rows)

    previous_players = set(shard.execute(
        select(PlayerScore.player_id).distinct()
        .where(PlayerScore.tenant_id == tenant_id, PlayerScore.competition_id == competition_id)
    ).scalars())

    now = int(time.time())
    new_rows = [
        PlayerScore(
            id=dispense_id(directory),
            tenant_id=tenant_id,
            player_id=player_id,
            competition_id=competition_id,
            score=score,
            row_num=row_num,
            created_at=now,
            updated_at=now,
        )
        for row_num, (player_id, score) in enumerate(rows)
    ]

    shard.execute(
        delete(PlayerScore)
        .where(PlayerScore.tenant_id == tenant_id, PlayerScore.competition_id == competition_id)
    )
    shard.add_all(new_rows)
    shard.execute(
        update(Competition)
        .where(Competition.id == competition_id)
        .values(score_generation=Competition.score_generation + 1, updated_at=now)
    )
    shard.commit()

    generation = shard.execute(
        select(Competition.score_generation).where(Competition.id == competition_id)
    ).scalar_one()
    affected = previous_players | {player_id for player_id, _ in rows}
    return generation, sorted(affected)


def import_scores(directory, shard, tenant_id, competition_id, upload, publish=None):
    """
    Validate ``upload`` and make it the competition's score set.

    Returns the number of rows ingested. ``publish`` receives the
    ScoreImported event once the new generation is committed.
    """
    comp = get_competition_or_404(shard, tenant_id, competition_id)
    if comp.is_finished:
        raise ConflictError("competition is finished")

    rows = parse_score_csv(upload)

    with tenant_lock(tenant_id):
        shard.refresh(comp)
        if comp.is_finished:
            raise ConflictError("competition is finished")
        generation, affected = replace_scores(directory, shard, tenant_id, competition_id, rows)

    logger.info(
        "Imported %d score rows tenant=%s competition=%s generation=%s",
        len(rows), tenant_id, competition_id, generation,
    )

    if publish is not None:
        publish(ScoreImported(
            tenant_id=tenant_id,
            competition_id=competition_id,
            generation=generation,
            player_ids=affected,
        ))
    return len(rows)
