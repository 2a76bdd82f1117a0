#!/usr/bin/env python3
"""
Demo season: users → teams → squad → league → lock → fixtures → random results → standings.
Run from project root: python3 scripts/demo_season.py [--teams 5] [--seed 7] [--double-round]
"""
from __future__ import annotations

import argparse
import logging
import random
import sys
from datetime import date
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from matchday.persistence import TeamRepository, UserRepository, get_connection, init_db, set_db_path
from matchday.services import LeagueService, SquadService


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a small league season end to end")
    parser.add_argument("--teams", type=int, default=5)
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument("--double-round", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    rng = random.Random(args.seed)

    # Separate DB so the demo never touches the app database
    db_path = PROJECT_ROOT / "data" / "demo_season.db"
    if db_path.exists():
        db_path.unlink()
    set_db_path(db_path)
    init_db(db_path=db_path)

    conn = get_connection()
    try:
        user_repo = UserRepository()
        team_repo = TeamRepository()
        leagues = LeagueService(double_round=args.double_round)
        squads = SquadService()

        owner = user_repo.create(conn, "organiser", name="League Organiser")
        team_ids: list[str] = []
        for i in range(1, args.teams + 1):
            captain = user_repo.create(conn, f"captain{i}", name=f"Captain {i}")
            team = team_repo.create(conn, captain.id, f"FC Demo {i}", "Manchester")
            for j in range(1, 6):
                player = user_repo.create(conn, f"t{i}p{j}", name=f"Player {i}.{j}")
                team_repo.add_member(conn, team.id, player.id)
            team_ids.append(team.id)

            # Captain picks a 5-a-side lineup through the editor
            editor = squads.open_editor(conn, team.id, captain.id)
            bench = [m.id for m in editor.bench()]
            for slot_key, player_id in zip(editor.formation.slot_keys(), bench):
                editor.assign_player(slot_key, player_id)
            editor.save()

        league = leagues.create_league(conn, owner.id, "Demo League", "Manchester", season="2026", start_date=date(2026, 9, 5))
        for tid in team_ids:
            leagues.add_team(conn, league.id, owner.id, tid)
        leagues.lock_league(conn, league.id, owner.id)

        matches = leagues.generate_schedule(conn, league.id, owner.id, kickoff_time="19:00")
        print(f"\nGenerated {len(matches)} fixtures")
        for m in matches:
            hg, ag = rng.randint(0, 4), rng.randint(0, 4)
            leagues.record_result(conn, m.id, owner.id, hg, ag)
            print(f"  R{m.round:>2} {m.scheduled_date}  {m.home_team_id[:8]} {hg}-{ag} {m.away_team_id[:8]}")
        leagues.complete_league(conn, league.id, owner.id)

        table = leagues.get_standings(conn, league.id)
        print("\n Pos  Team          P  W  D  L  GF  GA  GD  Pts")
        for row in table.to_dicts():
            print(
                f" {row['position']:>3}  {row['team_name']:<12} {row['played']:>2} {row['won']:>2} {row['drawn']:>2} "
                f"{row['lost']:>2} {row['goals_for']:>3} {row['goals_against']:>3} {row['goal_difference']:>3} {row['points']:>4}"
            )
    finally:
        conn.close()


if __name__ == "__main__":
    main()
