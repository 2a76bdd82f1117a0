"""
SQLite schema for league entities.
Migration-friendly: each table created with IF NOT EXISTS.
"""
from __future__ import annotations


def users_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        username TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_users_username ON users(username);
    """


def teams_schema() -> str:
    """Teams are created by their captain, who is also inserted as the OWNER member."""
    return """
    CREATE TABLE IF NOT EXISTS teams (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        city TEXT NOT NULL,
        captain_id TEXT NOT NULL,
        preferred_pitch_id TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (captain_id) REFERENCES users(id)
    );
    CREATE INDEX IF NOT EXISTS ix_teams_captain ON teams(captain_id);
    CREATE INDEX IF NOT EXISTS ix_teams_city ON teams(city);
    """


def team_members_schema() -> str:
    """role: OWNER | ADMIN | CAPTAIN | MEMBER. One row per user per team."""
    return """
    CREATE TABLE IF NOT EXISTS team_members (
        team_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'MEMBER',
        joined_at TEXT NOT NULL,
        PRIMARY KEY (team_id, user_id),
        FOREIGN KEY (team_id) REFERENCES teams(id) ON DELETE CASCADE,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    CREATE INDEX IF NOT EXISTS ix_team_members_user ON team_members(user_id);
    """


def squads_schema() -> str:
    """One squad per team; slots stored as JSON [{slot_key, player_id}]. Removed with the team."""
    return """
    CREATE TABLE IF NOT EXISTS squads (
        team_id TEXT PRIMARY KEY,
        mode INTEGER NOT NULL,
        formation_id TEXT NOT NULL,
        slots_json TEXT NOT NULL,
        updated_by TEXT,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (team_id) REFERENCES teams(id) ON DELETE CASCADE
    );
    """


def leagues_schema() -> str:
    """status: DRAFT | ACTIVE | COMPLETED."""
    return """
    CREATE TABLE IF NOT EXISTS leagues (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        city TEXT NOT NULL,
        season TEXT,
        start_date TEXT,
        status TEXT NOT NULL DEFAULT 'DRAFT',
        owner_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (owner_id) REFERENCES users(id)
    );
    CREATE INDEX IF NOT EXISTS ix_leagues_owner ON leagues(owner_id);
    CREATE INDEX IF NOT EXISTS ix_leagues_status ON leagues(status);
    """


def league_teams_schema() -> str:
    """Join order (joined_at, then rowid) is the team order used for scheduling."""
    return """
    CREATE TABLE IF NOT EXISTS league_teams (
        league_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        joined_at TEXT NOT NULL,
        PRIMARY KEY (league_id, team_id),
        FOREIGN KEY (league_id) REFERENCES leagues(id) ON DELETE CASCADE,
        FOREIGN KEY (team_id) REFERENCES teams(id) ON DELETE CASCADE
    );
    CREATE INDEX IF NOT EXISTS ix_league_teams_team ON league_teams(team_id);
    """


def matches_schema() -> str:
    """Fixture created by the schedule generator. status: SCHEDULED | PLAYED | CANCELLED."""
    return """
    CREATE TABLE IF NOT EXISTS matches (
        id TEXT PRIMARY KEY,
        league_id TEXT NOT NULL,
        home_team_id TEXT NOT NULL,
        away_team_id TEXT NOT NULL,
        round INTEGER NOT NULL,
        leg INTEGER NOT NULL DEFAULT 1,
        scheduled_date TEXT,
        scheduled_time TEXT,
        status TEXT NOT NULL DEFAULT 'SCHEDULED',
        created_at TEXT NOT NULL,
        CHECK (home_team_id <> away_team_id),
        FOREIGN KEY (league_id) REFERENCES leagues(id) ON DELETE CASCADE,
        FOREIGN KEY (home_team_id) REFERENCES teams(id) ON DELETE CASCADE,
        FOREIGN KEY (away_team_id) REFERENCES teams(id) ON DELETE CASCADE
    );
    CREATE INDEX IF NOT EXISTS ix_matches_league ON matches(league_id);
    CREATE INDEX IF NOT EXISTS ix_matches_league_round ON matches(league_id, round);
    CREATE INDEX IF NOT EXISTS ix_matches_home ON matches(home_team_id);
    CREATE INDEX IF NOT EXISTS ix_matches_away ON matches(away_team_id);
    """


def match_results_schema() -> str:
    """At most one result per match; re-recording overwrites."""
    return """
    CREATE TABLE IF NOT EXISTS match_results (
        match_id TEXT PRIMARY KEY,
        home_goals INTEGER NOT NULL CHECK (home_goals >= 0),
        away_goals INTEGER NOT NULL CHECK (away_goals >= 0),
        recorded_by TEXT NOT NULL,
        recorded_at TEXT NOT NULL,
        FOREIGN KEY (match_id) REFERENCES matches(id) ON DELETE CASCADE,
        FOREIGN KEY (recorded_by) REFERENCES users(id)
    );
    """


def all_schema_sql() -> str:
    """Combine all schema DDL for a single execution. Referenced tables first."""
    return "\n".join([
        users_schema(),
        teams_schema(),
        team_members_schema(),
        squads_schema(),
        leagues_schema(),
        league_teams_schema(),
        matches_schema(),
        match_results_schema(),
    ])
