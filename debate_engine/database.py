"""SQLite storage for debates, rounds, messages, scores, votes and audience requests."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from .exceptions import ConcurrencyError, NotFoundError, PersistenceError, ValidationError
from .models import (
    Agent,
    AudienceRequest,
    Debate,
    Message,
    Round,
    Score,
    Vote,
    in_audience_window,
    utcnow,
)
from .types import (
    AgentRole,
    AudienceType,
    DebateStatus,
    DebaterStyle,
    FoulType,
    Novelty,
    Phase,
    RequestIntent,
    RoundStatus,
    RoundType,
    Stance,
    Winner,
)

logger = logging.getLogger(__name__)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS debates (
        id TEXT PRIMARY KEY,
        topic TEXT NOT NULL,
        pro_definition TEXT,
        con_definition TEXT,
        max_rounds INTEGER NOT NULL,
        judge_weight REAL NOT NULL,
        audience_weight REAL NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        winner TEXT,
        failure_reason TEXT,
        created_at TEXT NOT NULL,
        started_at TEXT,
        completed_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS agents (
        id TEXT PRIMARY KEY,
        debate_id TEXT NOT NULL,
        role TEXT NOT NULL,
        name TEXT NOT NULL,
        provider TEXT NOT NULL,
        model TEXT NOT NULL,
        stance TEXT,
        style TEXT,
        audience_type TEXT,
        FOREIGN KEY (debate_id) REFERENCES debates (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS rounds (
        id TEXT PRIMARY KEY,
        debate_id TEXT NOT NULL,
        sequence INTEGER NOT NULL,
        phase TEXT NOT NULL,
        type TEXT NOT NULL,
        status TEXT NOT NULL,
        started_at TEXT NOT NULL,
        completed_at TEXT,
        UNIQUE (debate_id, sequence),
        FOREIGN KEY (debate_id) REFERENCES debates (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        round_id TEXT NOT NULL,
        agent_id TEXT NOT NULL,
        role TEXT NOT NULL,
        stance TEXT,
        content TEXT NOT NULL,
        token_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (round_id) REFERENCES rounds (id) ON DELETE CASCADE,
        FOREIGN KEY (agent_id) REFERENCES agents (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS scores (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        round_id TEXT NOT NULL,
        agent_id TEXT NOT NULL,
        stance TEXT NOT NULL,
        logic INTEGER NOT NULL,
        rebuttal INTEGER NOT NULL,
        clarity INTEGER NOT NULL,
        evidence INTEGER NOT NULL,
        comment TEXT,
        fouls TEXT,  -- JSON list
        UNIQUE (round_id, agent_id),
        FOREIGN KEY (round_id) REFERENCES rounds (id) ON DELETE CASCADE,
        FOREIGN KEY (agent_id) REFERENCES agents (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audience_requests (
        id TEXT PRIMARY KEY,
        round_id TEXT NOT NULL,
        agent_id TEXT NOT NULL,
        intent TEXT NOT NULL,
        claim TEXT NOT NULL,
        novelty TEXT NOT NULL,
        confidence REAL NOT NULL,
        approved INTEGER,  -- NULL until decided
        judge_comment TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (round_id) REFERENCES rounds (id) ON DELETE CASCADE,
        FOREIGN KEY (agent_id) REFERENCES agents (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS votes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        debate_id TEXT NOT NULL,
        agent_id TEXT NOT NULL,
        stance TEXT NOT NULL,
        confidence REAL NOT NULL,
        reason TEXT,
        created_at TEXT NOT NULL,
        UNIQUE (debate_id, agent_id),
        FOREIGN KEY (debate_id) REFERENCES debates (id) ON DELETE CASCADE,
        FOREIGN KEY (agent_id) REFERENCES agents (id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_rounds_debate_id ON rounds (debate_id, sequence)",
    "CREATE INDEX IF NOT EXISTS idx_messages_round_id ON messages (round_id)",
    "CREATE INDEX IF NOT EXISTS idx_scores_round_id ON scores (round_id)",
    "CREATE INDEX IF NOT EXISTS idx_votes_debate_id ON votes (debate_id)",
]


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _enum_or_none(enum_cls, value):
    return enum_cls(value) if value is not None else None


class DatabaseManager:
    """Manages the SQLite database backing the debate repository."""

    def __init__(self, db_path: str | Path = "debates.db"):
        self.db_path = Path(db_path)
        self._init_database()

    def _init_database(self) -> None:
        """Initialize the database with required tables."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            for statement in SCHEMA:
                cursor.execute(statement)
            conn.commit()
            logger.info(f"Database initialized at {self.db_path}")

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection, translating driver failures."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row  # Enable column access by name
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            logger.error(f"Database error: {e}")
            raise PersistenceError(f"Database error: {e}") from e
        finally:
            if conn:
                conn.close()

    # -- debates ---------------------------------------------------------

    def create_debate(self, debate: Debate, agents: list[Agent]) -> Debate:
        """Insert a debate together with its agents in one transaction."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO debates (
                    id, topic, pro_definition, con_definition, max_rounds,
                    judge_weight, audience_weight, status, winner, failure_reason,
                    created_at, started_at, completed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    debate.id,
                    debate.topic,
                    debate.pro_definition,
                    debate.con_definition,
                    debate.max_rounds,
                    debate.judge_weight,
                    debate.audience_weight,
                    debate.status.value,
                    debate.winner.value if debate.winner else None,
                    debate.failure_reason,
                    _ts(debate.created_at),
                    _ts(debate.started_at),
                    _ts(debate.completed_at),
                ),
            )
            for agent in agents:
                cursor.execute(
                    """
                    INSERT INTO agents (
                        id, debate_id, role, name, provider, model,
                        stance, style, audience_type
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        agent.id,
                        debate.id,
                        agent.role.value,
                        agent.name,
                        agent.provider,
                        agent.model,
                        agent.stance.value if agent.stance else None,
                        agent.style.value if agent.style else None,
                        agent.audience_type.value if agent.audience_type else None,
                    ),
                )
            conn.commit()
        logger.info(f"Saved debate {debate.id} with {len(agents)} agents")
        return debate

    def get_debate(self, debate_id: str) -> Debate | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM debates WHERE id = ?", (debate_id,)
            ).fetchone()
        return self._row_to_debate(row) if row else None

    def list_debates(self, limit: int = 50, offset: int = 0) -> list[Debate]:
        """List debates, newest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM debates ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
        return [self._row_to_debate(row) for row in rows]

    def count_debates(self, status: DebateStatus | None = None) -> int:
        with self._get_connection() as conn:
            if status is None:
                row = conn.execute("SELECT COUNT(*) FROM debates").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM debates WHERE status = ?", (status.value,)
                ).fetchone()
        return row[0]

    def transition_debate(
        self,
        debate_id: str,
        expected: DebateStatus,
        new_status: DebateStatus,
        *,
        winner: Winner | None = None,
        failure_reason: str | None = None,
    ) -> Debate:
        """Move a debate from ``expected`` to ``new_status`` atomically.

        The update only applies while the stored status still equals
        ``expected``; otherwise ConcurrencyError is raised and nothing
        changes.
        """
        assignments = ["status = ?"]
        params: list[object] = [new_status.value]
        now = _ts(utcnow())
        if new_status is DebateStatus.RUNNING:
            assignments.append("started_at = ?")
            params.append(now)
        if new_status in (DebateStatus.COMPLETED, DebateStatus.FAILED):
            assignments.append("completed_at = ?")
            params.append(now)
        if winner is not None:
            assignments.append("winner = ?")
            params.append(winner.value)
        if failure_reason is not None:
            assignments.append("failure_reason = ?")
            params.append(failure_reason)
        params.extend([debate_id, expected.value])

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE debates SET {', '.join(assignments)} WHERE id = ? AND status = ?",
                params,
            )
            if cursor.rowcount == 0:
                row = conn.execute(
                    "SELECT status FROM debates WHERE id = ?", (debate_id,)
                ).fetchone()
                if row is None:
                    raise NotFoundError(f"Debate {debate_id} not found")
                raise ConcurrencyError(
                    f"Debate {debate_id} is {row['status']}, expected {expected.value}"
                )
            conn.commit()
            row = conn.execute(
                "SELECT * FROM debates WHERE id = ?", (debate_id,)
            ).fetchone()

        logger.info(f"Debate {debate_id}: {expected.value} -> {new_status.value}")
        return self._row_to_debate(row)

    def delete_debate(self, debate_id: str) -> bool:
        """Delete a debate and everything that belongs to it."""
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM debates WHERE id = ?", (debate_id,))
            conn.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted debate {debate_id}")
        return deleted

    # -- agents ----------------------------------------------------------

    def get_agents(self, debate_id: str) -> list[Agent]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM agents WHERE debate_id = ? ORDER BY rowid", (debate_id,)
            ).fetchall()
        return [self._row_to_agent(row) for row in rows]

    # -- rounds ----------------------------------------------------------

    def create_round(self, round_: Round) -> Round:
        """Insert the next round. Sequences must stay contiguous from 1."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM rounds WHERE debate_id = ?",
                (round_.debate_id,),
            ).fetchone()
            expected_sequence = row["n"] + 1
            if round_.sequence != expected_sequence:
                raise ValidationError(
                    f"Round sequence {round_.sequence} out of order, expected {expected_sequence}"
                )
            try:
                conn.execute(
                    """
                    INSERT INTO rounds (
                        id, debate_id, sequence, phase, type, status, started_at, completed_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        round_.id,
                        round_.debate_id,
                        round_.sequence,
                        round_.phase.value,
                        round_.type.value,
                        round_.status.value,
                        _ts(round_.started_at),
                        _ts(round_.completed_at),
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise ConcurrencyError(
                    f"Round {round_.sequence} already exists for debate {round_.debate_id}"
                ) from e
            conn.commit()
        return round_

    def get_rounds(self, debate_id: str) -> list[Round]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM rounds WHERE debate_id = ? ORDER BY sequence",
                (debate_id,),
            ).fetchall()
        return [self._row_to_round(row) for row in rows]

    def get_round(self, round_id: str) -> Round | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM rounds WHERE id = ?", (round_id,)).fetchone()
        return self._row_to_round(row) if row else None

    def set_round_type(self, round_id: str, round_type: RoundType) -> None:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE rounds SET type = ? WHERE id = ?", (round_type.value, round_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Round {round_id} not found")
            conn.commit()

    def finish_round(self, round_id: str, status: RoundStatus) -> Round:
        """Mark a running round completed or failed. Terminal states are final."""
        if status is RoundStatus.RUNNING:
            raise ValidationError("A round can only finish as completed or failed")
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE rounds SET status = ?, completed_at = ? WHERE id = ? AND status = ?",
                (status.value, _ts(utcnow()), round_id, RoundStatus.RUNNING.value),
            )
            if cursor.rowcount == 0:
                row = conn.execute(
                    "SELECT status FROM rounds WHERE id = ?", (round_id,)
                ).fetchone()
                if row is None:
                    raise NotFoundError(f"Round {round_id} not found")
                raise ConcurrencyError(f"Round {round_id} already {row['status']}")
            conn.commit()
            row = conn.execute("SELECT * FROM rounds WHERE id = ?", (round_id,)).fetchone()
        return self._row_to_round(row)

    # -- messages --------------------------------------------------------

    def create_message(self, message: Message) -> Message:
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO messages (
                    round_id, agent_id, role, stance, content, token_count, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message.round_id,
                    message.agent_id,
                    message.role.value,
                    message.stance.value if message.stance else None,
                    message.content,
                    message.token_count,
                    _ts(message.created_at),
                ),
            )
            conn.commit()
            message.id = cursor.lastrowid
        return message

    def get_round_messages(self, round_id: str) -> list[Message]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM messages WHERE round_id = ? ORDER BY id", (round_id,)
            ).fetchall()
        return [self._row_to_message(row) for row in rows]

    def get_debate_messages(self, debate_id: str) -> list[Message]:
        """All messages of a debate in speaking order."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT m.* FROM messages m
                JOIN rounds r ON r.id = m.round_id
                WHERE r.debate_id = ?
                ORDER BY r.sequence, m.id
                """,
                (debate_id,),
            ).fetchall()
        return [self._row_to_message(row) for row in rows]

    # -- scores ----------------------------------------------------------

    def create_score(self, score: Score) -> Score:
        with self._get_connection() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO scores (
                        round_id, agent_id, stance, logic, rebuttal, clarity,
                        evidence, comment, fouls
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        score.round_id,
                        score.agent_id,
                        score.stance.value,
                        score.logic,
                        score.rebuttal,
                        score.clarity,
                        score.evidence,
                        score.comment,
                        json.dumps([foul.value for foul in score.fouls]),
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise ConcurrencyError(
                    f"Agent {score.agent_id} already scored in round {score.round_id}"
                ) from e
            conn.commit()
            score.id = cursor.lastrowid
        return score

    def get_round_scores(self, round_id: str) -> list[Score]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM scores WHERE round_id = ? ORDER BY id", (round_id,)
            ).fetchall()
        return [self._row_to_score(row) for row in rows]

    def get_debate_scores(self, debate_id: str) -> list[tuple[Round, Score]]:
        """Every score of a debate paired with its round, in round order."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT s.*, r.debate_id, r.sequence, r.phase, r.type, r.status,
                       r.started_at, r.completed_at
                FROM scores s
                JOIN rounds r ON r.id = s.round_id
                WHERE r.debate_id = ?
                ORDER BY r.sequence, s.id
                """,
                (debate_id,),
            ).fetchall()
        pairs = []
        for row in rows:
            round_ = Round(
                id=row["round_id"],
                debate_id=row["debate_id"],
                sequence=row["sequence"],
                phase=Phase(row["phase"]),
                type=RoundType(row["type"]),
                status=RoundStatus(row["status"]),
                started_at=_parse_ts(row["started_at"]),
                completed_at=_parse_ts(row["completed_at"]),
            )
            pairs.append((round_, self._row_to_score(row)))
        return pairs

    # -- audience requests -----------------------------------------------

    def create_audience_request(self, request: AudienceRequest) -> AudienceRequest:
        """Record an audience request. Only rounds 3 to 6 accept requests."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT sequence FROM rounds WHERE id = ?", (request.round_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Round {request.round_id} not found")
            if not in_audience_window(row["sequence"]):
                raise ValidationError(
                    f"Audience requests are not accepted in round {row['sequence']}"
                )
            conn.execute(
                """
                INSERT INTO audience_requests (
                    id, round_id, agent_id, intent, claim, novelty, confidence,
                    approved, judge_comment, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    request.id,
                    request.round_id,
                    request.agent_id,
                    request.intent.value,
                    request.claim,
                    request.novelty.value,
                    request.confidence,
                    None if request.approved is None else int(request.approved),
                    request.judge_comment,
                    _ts(request.created_at),
                ),
            )
            conn.commit()
        return request

    def decide_audience_request(
        self, request_id: str, approved: bool, comment: str
    ) -> AudienceRequest:
        """Set the decision on a request. A decided request cannot be decided again."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                UPDATE audience_requests SET approved = ?, judge_comment = ?
                WHERE id = ? AND approved IS NULL
                """,
                (int(approved), comment, request_id),
            )
            if cursor.rowcount == 0:
                row = conn.execute(
                    "SELECT approved FROM audience_requests WHERE id = ?", (request_id,)
                ).fetchone()
                if row is None:
                    raise NotFoundError(f"Audience request {request_id} not found")
                raise ConcurrencyError(f"Audience request {request_id} already decided")
            conn.commit()
            row = conn.execute(
                "SELECT * FROM audience_requests WHERE id = ?", (request_id,)
            ).fetchone()
        return self._row_to_request(row)

    def get_round_audience_requests(self, round_id: str) -> list[AudienceRequest]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM audience_requests WHERE round_id = ? ORDER BY rowid",
                (round_id,),
            ).fetchall()
        return [self._row_to_request(row) for row in rows]

    # -- votes -----------------------------------------------------------

    def create_vote(self, vote: Vote) -> Vote:
        """Record a ballot. Ballots are frozen once the debate is completed."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT status FROM debates WHERE id = ?", (vote.debate_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Debate {vote.debate_id} not found")
            if row["status"] == DebateStatus.COMPLETED.value:
                raise ConcurrencyError(f"Debate {vote.debate_id} is completed; votes are frozen")
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO votes (
                        debate_id, agent_id, stance, confidence, reason, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        vote.debate_id,
                        vote.agent_id,
                        vote.stance.value,
                        vote.confidence,
                        vote.reason,
                        _ts(vote.created_at),
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise ConcurrencyError(
                    f"Agent {vote.agent_id} already voted in debate {vote.debate_id}"
                ) from e
            conn.commit()
            vote.id = cursor.lastrowid
        return vote

    def get_votes(self, debate_id: str) -> list[Vote]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM votes WHERE debate_id = ? ORDER BY id", (debate_id,)
            ).fetchall()
        return [self._row_to_vote(row) for row in rows]

    # -- row mapping -----------------------------------------------------

    @staticmethod
    def _row_to_debate(row: sqlite3.Row) -> Debate:
        return Debate(
            id=row["id"],
            topic=row["topic"],
            pro_definition=row["pro_definition"],
            con_definition=row["con_definition"],
            max_rounds=row["max_rounds"],
            judge_weight=row["judge_weight"],
            audience_weight=row["audience_weight"],
            status=DebateStatus(row["status"]),
            winner=_enum_or_none(Winner, row["winner"]),
            failure_reason=row["failure_reason"],
            created_at=_parse_ts(row["created_at"]),
            started_at=_parse_ts(row["started_at"]),
            completed_at=_parse_ts(row["completed_at"]),
        )

    @staticmethod
    def _row_to_agent(row: sqlite3.Row) -> Agent:
        return Agent(
            id=row["id"],
            debate_id=row["debate_id"],
            role=AgentRole(row["role"]),
            name=row["name"],
            provider=row["provider"],
            model=row["model"],
            stance=_enum_or_none(Stance, row["stance"]),
            style=_enum_or_none(DebaterStyle, row["style"]),
            audience_type=_enum_or_none(AudienceType, row["audience_type"]),
        )

    @staticmethod
    def _row_to_round(row: sqlite3.Row) -> Round:
        return Round(
            id=row["id"],
            debate_id=row["debate_id"],
            sequence=row["sequence"],
            phase=Phase(row["phase"]),
            type=RoundType(row["type"]),
            status=RoundStatus(row["status"]),
            started_at=_parse_ts(row["started_at"]),
            completed_at=_parse_ts(row["completed_at"]),
        )

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> Message:
        return Message(
            id=row["id"],
            round_id=row["round_id"],
            agent_id=row["agent_id"],
            role=AgentRole(row["role"]),
            stance=_enum_or_none(Stance, row["stance"]),
            content=row["content"],
            token_count=row["token_count"],
            created_at=_parse_ts(row["created_at"]),
        )

    @staticmethod
    def _row_to_score(row: sqlite3.Row) -> Score:
        return Score(
            id=row["id"],
            round_id=row["round_id"],
            agent_id=row["agent_id"],
            stance=Stance(row["stance"]),
            logic=row["logic"],
            rebuttal=row["rebuttal"],
            clarity=row["clarity"],
            evidence=row["evidence"],
            comment=row["comment"] or "",
            fouls=[FoulType(value) for value in json.loads(row["fouls"] or "[]")],
        )

    @staticmethod
    def _row_to_request(row: sqlite3.Row) -> AudienceRequest:
        approved = row["approved"]
        return AudienceRequest(
            id=row["id"],
            round_id=row["round_id"],
            agent_id=row["agent_id"],
            intent=RequestIntent(row["intent"]),
            claim=row["claim"],
            novelty=Novelty(row["novelty"]),
            confidence=row["confidence"],
            approved=None if approved is None else bool(approved),
            judge_comment=row["judge_comment"],
            created_at=_parse_ts(row["created_at"]),
        )

    @staticmethod
    def _row_to_vote(row: sqlite3.Row) -> Vote:
        return Vote(
            id=row["id"],
            debate_id=row["debate_id"],
            agent_id=row["agent_id"],
            stance=Winner(row["stance"]),
            confidence=row["confidence"],
            reason=row["reason"],
            created_at=_parse_ts(row["created_at"]),
        )
