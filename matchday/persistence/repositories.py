"""
Repository interfaces for league data.
No business logic; only read/write operations.
"""
from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Iterable

from matchday.models import (
    League,
    LeagueStatus,
    LeagueTeam,
    Match,
    MatchResult,
    MatchStatus,
    Squad,
    SquadSlot,
    Team,
    TeamMember,
    TeamMemberRole,
    User,
)

if TYPE_CHECKING:
    from matchday.services.scheduling import Fixture


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _parse_date(s: str | None) -> date | None:
    return date.fromisoformat(s) if s else None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------- UserRepository ----------


class UserRepository:
    """CRUD for users. Passwords are stored hashed only."""

    def create(
        self,
        conn: sqlite3.Connection,
        username: str,
        name: str | None = None,
        password_hash: str = "",
        id: str | None = None,
    ) -> User:
        uid = id or str(uuid.uuid4())
        now = _now_iso()
        display_name = name or username
        conn.execute(
            "INSERT INTO users (id, name, username, password_hash, created_at) VALUES (?, ?, ?, ?, ?)",
            (uid, display_name, username, password_hash, now),
        )
        conn.commit()
        return User(
            id=uid, name=display_name, username=username,
            created_at=datetime.fromisoformat(now), password_hash=password_hash,
        )

    def get(self, conn: sqlite3.Connection, user_id: str) -> User | None:
        row = conn.execute(
            "SELECT id, name, username, password_hash, created_at FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
        return self._from_row(row) if row is not None else None

    def get_by_username(self, conn: sqlite3.Connection, username: str) -> User | None:
        row = conn.execute(
            "SELECT id, name, username, password_hash, created_at FROM users WHERE username = ?",
            (username,),
        ).fetchone()
        return self._from_row(row) if row is not None else None

    @staticmethod
    def _from_row(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            name=row["name"],
            username=row["username"],
            created_at=_parse_datetime(row["created_at"]),
            password_hash=row["password_hash"],
        )


# ---------- TeamRepository ----------


class TeamRepository:
    """CRUD for teams and team_members."""

    def create(
        self,
        conn: sqlite3.Connection,
        captain_id: str,
        name: str,
        city: str,
        preferred_pitch_id: str | None = None,
        id: str | None = None,
    ) -> Team:
        """Create team and insert the captain as its OWNER member (single transaction)."""
        tid = id or str(uuid.uuid4())
        now = _now_iso()
        try:
            conn.execute(
                "INSERT INTO teams (id, name, city, captain_id, preferred_pitch_id, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (tid, name, city, captain_id, preferred_pitch_id, now),
            )
            conn.execute(
                "INSERT INTO team_members (team_id, user_id, role, joined_at) VALUES (?, ?, ?, ?)",
                (tid, captain_id, TeamMemberRole.OWNER.value, now),
            )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        return Team(
            id=tid, name=name, city=city, captain_id=captain_id,
            created_at=datetime.fromisoformat(now), preferred_pitch_id=preferred_pitch_id,
            members=self.list_members(conn, tid),
        )

    def get(self, conn: sqlite3.Connection, team_id: str) -> Team | None:
        row = conn.execute(
            "SELECT id, name, city, captain_id, preferred_pitch_id, created_at FROM teams WHERE id = ?",
            (team_id,),
        ).fetchone()
        if row is None:
            return None
        return Team(
            id=row["id"],
            name=row["name"],
            city=row["city"],
            captain_id=row["captain_id"],
            preferred_pitch_id=row["preferred_pitch_id"],
            created_at=_parse_datetime(row["created_at"]),
            members=self.list_members(conn, team_id),
        )

    def list_members(self, conn: sqlite3.Connection, team_id: str) -> list[TeamMember]:
        rows = conn.execute(
            """
            SELECT tm.team_id, tm.user_id, tm.role, tm.joined_at, u.name, u.username
            FROM team_members tm LEFT JOIN users u ON u.id = tm.user_id
            WHERE tm.team_id = ?
            ORDER BY tm.joined_at, tm.rowid
            """,
            (team_id,),
        ).fetchall()
        return [
            TeamMember(
                team_id=r["team_id"],
                user_id=r["user_id"],
                role=r["role"],
                joined_at=_parse_datetime(r["joined_at"]),
                name=r["name"],
                username=r["username"],
            )
            for r in rows
        ]

    def add_member(
        self,
        conn: sqlite3.Connection,
        team_id: str,
        user_id: str,
        role: str = TeamMemberRole.MEMBER.value,
    ) -> TeamMember:
        now = _now_iso()
        conn.execute(
            "INSERT INTO team_members (team_id, user_id, role, joined_at) VALUES (?, ?, ?, ?)",
            (team_id, user_id, role, now),
        )
        conn.commit()
        return TeamMember(team_id=team_id, user_id=user_id, role=role, joined_at=datetime.fromisoformat(now))

    def remove_member(self, conn: sqlite3.Connection, team_id: str, user_id: str) -> bool:
        """Delete one roster row. Returns False when the user was not a member."""
        cur = conn.execute("DELETE FROM team_members WHERE team_id = ? AND user_id = ?", (team_id, user_id))
        conn.commit()
        return cur.rowcount > 0

    def list_ids_by_member(self, conn: sqlite3.Connection, user_id: str) -> list[str]:
        rows = conn.execute("SELECT team_id FROM team_members WHERE user_id = ?", (user_id,)).fetchall()
        return [r["team_id"] for r in rows]

    def delete(self, conn: sqlite3.Connection, team_id: str) -> None:
        """Delete team; members, squad, league entries and fixtures cascade."""
        conn.execute("DELETE FROM teams WHERE id = ?", (team_id,))
        conn.commit()


# ---------- SquadRepository ----------


class SquadRepository:
    """One squad row per team. Last write wins."""

    def get(self, conn: sqlite3.Connection, team_id: str) -> Squad | None:
        row = conn.execute(
            "SELECT team_id, mode, formation_id, slots_json, updated_by, updated_at FROM squads WHERE team_id = ?",
            (team_id,),
        ).fetchone()
        if row is None:
            return None
        slots = [
            SquadSlot(slot_key=s["slot_key"], role=s.get("role") or "", player_id=s.get("player_id"))
            for s in json.loads(row["slots_json"])
        ]
        return Squad(
            team_id=row["team_id"],
            mode=row["mode"],
            formation_id=row["formation_id"],
            slots=slots,
            updated_at=_parse_datetime(row["updated_at"]),
            updated_by=row["updated_by"],
        )

    def upsert(
        self,
        conn: sqlite3.Connection,
        team_id: str,
        mode: int,
        formation_id: str,
        slots: list[SquadSlot],
        updated_by: str | None,
    ) -> Squad:
        now = _now_iso()
        slots_json = json.dumps([
            {"slot_key": s.slot_key, "role": s.role, "player_id": s.player_id} for s in slots
        ])
        conn.execute(
            """
            INSERT INTO squads (team_id, mode, formation_id, slots_json, updated_by, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(team_id) DO UPDATE SET
                mode = excluded.mode,
                formation_id = excluded.formation_id,
                slots_json = excluded.slots_json,
                updated_by = excluded.updated_by,
                updated_at = excluded.updated_at
            """,
            (team_id, mode, formation_id, slots_json, updated_by, now),
        )
        conn.commit()
        return Squad(
            team_id=team_id, mode=mode, formation_id=formation_id,
            slots=[SquadSlot(slot_key=s.slot_key, role=s.role, player_id=s.player_id, player=s.player) for s in slots],
            updated_at=datetime.fromisoformat(now), updated_by=updated_by,
        )


# ---------- LeagueRepository ----------


class LeagueRepository:
    """CRUD for leagues. No business logic."""

    _COLS = "id, name, city, season, start_date, status, owner_id, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        city: str,
        owner_id: str,
        season: str | None = None,
        start_date: date | None = None,
        id: str | None = None,
    ) -> League:
        lid = id or str(uuid.uuid4())
        now = _now_iso()
        conn.execute(
            f"INSERT INTO leagues ({self._COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (lid, name, city, season, start_date.isoformat() if start_date else None,
             LeagueStatus.DRAFT.value, owner_id, now),
        )
        conn.commit()
        return League(
            id=lid, name=name, city=city, owner_id=owner_id, status=LeagueStatus.DRAFT.value,
            created_at=datetime.fromisoformat(now), season=season, start_date=start_date,
        )

    def get(self, conn: sqlite3.Connection, league_id: str) -> League | None:
        row = conn.execute(f"SELECT {self._COLS} FROM leagues WHERE id = ?", (league_id,)).fetchone()
        return self._from_row(row) if row is not None else None

    def list_all(self, conn: sqlite3.Connection, status: str | None = None, city: str | None = None) -> list[League]:
        sql = f"SELECT {self._COLS} FROM leagues"
        where: list[str] = []
        args: list[str] = []
        if status:
            where.append("status = ?")
            args.append(status)
        if city:
            where.append("city = ?")
            args.append(city)
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at DESC"
        return [self._from_row(r) for r in conn.execute(sql, args).fetchall()]

    def update_status(self, conn: sqlite3.Connection, league_id: str, status: str) -> None:
        conn.execute("UPDATE leagues SET status = ? WHERE id = ?", (status, league_id))
        conn.commit()

    @staticmethod
    def _from_row(row: sqlite3.Row) -> League:
        return League(
            id=row["id"],
            name=row["name"],
            city=row["city"],
            owner_id=row["owner_id"],
            status=row["status"],
            created_at=_parse_datetime(row["created_at"]),
            season=row["season"],
            start_date=_parse_date(row["start_date"]),
        )


# ---------- LeagueTeamRepository ----------


class LeagueTeamRepository:
    """league_teams join table. Join order is preserved."""

    def add(self, conn: sqlite3.Connection, league_id: str, team_id: str) -> LeagueTeam:
        now = _now_iso()
        conn.execute(
            "INSERT INTO league_teams (league_id, team_id, joined_at) VALUES (?, ?, ?)",
            (league_id, team_id, now),
        )
        conn.commit()
        return LeagueTeam(league_id=league_id, team_id=team_id, joined_at=datetime.fromisoformat(now))

    def remove(self, conn: sqlite3.Connection, league_id: str, team_id: str) -> None:
        conn.execute("DELETE FROM league_teams WHERE league_id = ? AND team_id = ?", (league_id, team_id))
        conn.commit()

    def exists(self, conn: sqlite3.Connection, league_id: str, team_id: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM league_teams WHERE league_id = ? AND team_id = ?",
            (league_id, team_id),
        ).fetchone()
        return row is not None

    def list_by_league(self, conn: sqlite3.Connection, league_id: str) -> list[LeagueTeam]:
        rows = conn.execute(
            "SELECT league_id, team_id, joined_at FROM league_teams WHERE league_id = ? ORDER BY joined_at, rowid",
            (league_id,),
        ).fetchall()
        return [
            LeagueTeam(league_id=r["league_id"], team_id=r["team_id"], joined_at=_parse_datetime(r["joined_at"]))
            for r in rows
        ]

    def list_team_ids(self, conn: sqlite3.Connection, league_id: str) -> list[str]:
        return [lt.team_id for lt in self.list_by_league(conn, league_id)]


# ---------- MatchRepository ----------


class MatchRepository:
    """CRUD for matches (fixtures) and match_results."""

    _SELECT = """
        SELECT m.id, m.league_id, m.home_team_id, m.away_team_id, m.round, m.leg,
               m.scheduled_date, m.scheduled_time, m.status, m.created_at,
               r.home_goals, r.away_goals, r.recorded_by, r.recorded_at
        FROM matches m LEFT JOIN match_results r ON r.match_id = m.id
    """

    def create_many(self, conn: sqlite3.Connection, league_id: str, fixtures: Iterable[Fixture]) -> list[Match]:
        """Insert all fixtures in one transaction; nothing is written if any insert fails."""
        now = _now_iso()
        created: list[Match] = []
        try:
            for f in fixtures:
                mid = str(uuid.uuid4())
                conn.execute(
                    "INSERT INTO matches (id, league_id, home_team_id, away_team_id, round, leg, scheduled_date, scheduled_time, status, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (mid, league_id, f.home_team_id, f.away_team_id, f.round, f.leg,
                     f.scheduled_date.isoformat() if f.scheduled_date else None,
                     f.scheduled_time, MatchStatus.SCHEDULED.value, now),
                )
                created.append(Match(
                    id=mid, league_id=league_id, home_team_id=f.home_team_id, away_team_id=f.away_team_id,
                    round=f.round, leg=f.leg, status=MatchStatus.SCHEDULED.value,
                    created_at=datetime.fromisoformat(now),
                    scheduled_date=f.scheduled_date, scheduled_time=f.scheduled_time,
                ))
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        return created

    def get(self, conn: sqlite3.Connection, match_id: str) -> Match | None:
        row = conn.execute(self._SELECT + " WHERE m.id = ?", (match_id,)).fetchone()
        return self._from_row(row) if row is not None else None

    def list_by_league(self, conn: sqlite3.Connection, league_id: str) -> list[Match]:
        rows = conn.execute(
            self._SELECT + " WHERE m.league_id = ? ORDER BY m.round, m.rowid",
            (league_id,),
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def count_by_league(self, conn: sqlite3.Connection, league_id: str) -> int:
        row = conn.execute("SELECT COUNT(*) AS n FROM matches WHERE league_id = ?", (league_id,)).fetchone()
        return int(row["n"])

    def record_result(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        home_goals: int,
        away_goals: int,
        recorded_by: str,
    ) -> None:
        now = _now_iso()
        try:
            conn.execute(
                """
                INSERT INTO match_results (match_id, home_goals, away_goals, recorded_by, recorded_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(match_id) DO UPDATE SET
                    home_goals = excluded.home_goals,
                    away_goals = excluded.away_goals,
                    recorded_by = excluded.recorded_by,
                    recorded_at = excluded.recorded_at
                """,
                (match_id, home_goals, away_goals, recorded_by, now),
            )
            conn.execute("UPDATE matches SET status = ? WHERE id = ?", (MatchStatus.PLAYED.value, match_id))
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise

    def update_status(self, conn: sqlite3.Connection, match_id: str, status: str) -> None:
        conn.execute("UPDATE matches SET status = ? WHERE id = ?", (status, match_id))
        conn.commit()

    def update_schedule(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        scheduled_date: date | None,
        scheduled_time: str | None,
    ) -> None:
        conn.execute(
            "UPDATE matches SET scheduled_date = ?, scheduled_time = ? WHERE id = ?",
            (scheduled_date.isoformat() if scheduled_date else None, scheduled_time, match_id),
        )
        conn.commit()

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Match:
        result = None
        if row["home_goals"] is not None:
            result = MatchResult(
                home_goals=row["home_goals"],
                away_goals=row["away_goals"],
                recorded_by=row["recorded_by"],
                recorded_at=_parse_datetime(row["recorded_at"]),
            )
        return Match(
            id=row["id"],
            league_id=row["league_id"],
            home_team_id=row["home_team_id"],
            away_team_id=row["away_team_id"],
            round=row["round"],
            leg=row["leg"],
            status=row["status"],
            created_at=_parse_datetime(row["created_at"]),
            scheduled_date=_parse_date(row["scheduled_date"]),
            scheduled_time=row["scheduled_time"],
            result=result,
        )
