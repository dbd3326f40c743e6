"""
College Football Playoff bracket picks.

Twelve teams: seeds 1-4 get byes straight into the quarterfinals, the other
eight play four first-round games. Each entry picks a winner for every slot;
a slot's two teams come from the entry's own earlier picks.
"""

import logging
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import Session, select

from ..models.cfp import CfpPick, CfpSlot
from ..models.pool import Pool, PoolEntry
from ..models.team import Team
from .bowl import as_utc
from .evaluator import FINAL, HIGHER, LOWER, GameOutcome, evaluate
from .pools import get_or_create_team
from .validation import validate_score_entry

logger = logging.getLogger("app.cfp")

SLOT_KEYS = ["R1A", "R1B", "R1C", "R1D", "QFA", "QFB", "QFC", "QFD", "SFA", "SFB", "F"]

# Where each slot's winner goes, and on which side
BRACKET_FLOW: Dict[str, Tuple[str, str]] = {
    "R1A": ("QFA", "a"),
    "R1B": ("QFB", "a"),
    "R1C": ("QFC", "a"),
    "R1D": ("QFD", "a"),
    "QFA": ("SFA", "a"),
    "QFD": ("SFA", "b"),
    "QFB": ("SFB", "a"),
    "QFC": ("SFB", "b"),
    "SFA": ("F", "a"),
    "SFB": ("F", "b"),
}

BYE_TO_QF = {1: "QFA", 2: "QFB", 3: "QFC", 4: "QFD"}

# Slots feeding each later slot, side a then side b
FEEDERS: Dict[str, Tuple[Optional[str], Optional[str]]] = {
    "QFA": ("R1A", None),
    "QFB": ("R1B", None),
    "QFC": ("R1C", None),
    "QFD": ("R1D", None),
    "SFA": ("QFA", "QFD"),
    "SFB": ("QFB", "QFC"),
    "F": ("SFA", "SFB"),
}


def setup_bracket(
    db: Session,
    pool: Pool,
    bye_teams: Dict[int, str],
    round1: Dict[str, Tuple[str, str]],
    lock_at: Optional[datetime] = None,
) -> Dict[str, CfpSlot]:
    """Create the eleven slots from the four bye teams and the four first-round matchups."""
    if get_slots(db, pool):
        raise ValueError("Bracket already set up")
    if set(bye_teams) != set(BYE_TO_QF):
        raise ValueError("Bye teams must be seeds 1-4")
    if set(round1) != {"R1A", "R1B", "R1C", "R1D"}:
        raise ValueError("First round needs matchups R1A-R1D")

    slots = {key: CfpSlot(pool_id=pool.id, slot_key=key) for key in SLOT_KEYS}
    for key, (team_a, team_b) in round1.items():
        slots[key].team_a_id = get_or_create_team(db, team_a).id
        slots[key].team_b_id = get_or_create_team(db, team_b).id
    for seed, name in bye_teams.items():
        slots[BYE_TO_QF[seed]].team_b_id = get_or_create_team(db, name).id

    for slot in slots.values():
        db.add(slot)
    pool.cfp_lock_at = lock_at
    db.add(pool)
    db.commit()
    return get_slots(db, pool)


def get_slots(db: Session, pool: Pool) -> Dict[str, CfpSlot]:
    slots = db.exec(select(CfpSlot).where(CfpSlot.pool_id == pool.id)).all()
    return {s.slot_key: s for s in slots}


def get_slot(db: Session, pool: Pool, slot_key: str) -> CfpSlot:
    slot = db.exec(
        select(CfpSlot).where(CfpSlot.pool_id == pool.id, CfpSlot.slot_key == slot_key)
    ).first()
    if not slot:
        raise LookupError(f"Slot {slot_key} not found")
    return slot


def is_cfp_locked(pool: Pool, now: Optional[datetime] = None) -> bool:
    if pool.demo_mode or pool.cfp_lock_at is None:
        return False
    return (as_utc(now) or datetime.now(UTC)) >= as_utc(pool.cfp_lock_at)


def slot_teams(slot_key: str, picks: Dict[str, Optional[int]], slots: Dict[str, CfpSlot]) -> Tuple[Optional[int], Optional[int]]:
    """The two teams an entry sees in a slot, given its picks so far."""
    slot = slots.get(slot_key)
    if slot_key.startswith("R1"):
        return (slot.team_a_id, slot.team_b_id) if slot else (None, None)

    feeder_a, feeder_b = FEEDERS[slot_key]
    team_a = picks.get(feeder_a)
    if feeder_b is None:
        # Quarterfinal: first-round pick against the bye team
        team_b = slot.team_b_id if slot else None
    else:
        team_b = picks.get(feeder_b)
    return team_a, team_b


def clear_downstream_picks(slot_key: str, picks: Dict[str, Optional[int]], slots: Dict[str, CfpSlot]) -> List[str]:
    """Null out later picks that are no longer possible. Mutates `picks`."""
    cleared = []
    flow = BRACKET_FLOW.get(slot_key)
    if not flow:
        return cleared

    next_slot = flow[0]
    current = picks.get(next_slot)
    if current is not None and current not in slot_teams(next_slot, picks, slots):
        picks[next_slot] = None
        cleared.append(next_slot)
        cleared.extend(clear_downstream_picks(next_slot, picks, slots))
    return cleared


def get_entry_picks(db: Session, entry: PoolEntry) -> Dict[str, Optional[int]]:
    picks = db.exec(select(CfpPick).where(CfpPick.entry_id == entry.id)).all()
    return {p.slot_key: p.picked_team_id for p in picks}


def save_cfp_pick(
    db: Session,
    pool: Pool,
    entry: PoolEntry,
    slot_key: str,
    team_id: int,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    if slot_key not in SLOT_KEYS:
        raise LookupError(f"Slot {slot_key} not found")
    if is_cfp_locked(pool, now):
        raise ValueError("The bracket is locked")

    slots = get_slots(db, pool)
    picks = get_entry_picks(db, entry)
    if team_id not in slot_teams(slot_key, picks, slots):
        raise ValueError("Picked team is not in this matchup")

    picks[slot_key] = team_id
    cleared = clear_downstream_picks(slot_key, picks, slots)

    existing = {
        p.slot_key: p
        for p in db.exec(select(CfpPick).where(CfpPick.entry_id == entry.id)).all()
    }
    pick = existing.get(slot_key) or CfpPick(entry_id=entry.id, slot_key=slot_key)
    pick.picked_team_id = team_id
    pick.updated_at = datetime.now(UTC)
    db.add(pick)

    for key in cleared:
        if key in existing:
            db.delete(existing[key])

    db.commit()
    return {"slot_key": slot_key, "picked_team_id": team_id, "cleared_slots": cleared}


def record_slot_result(
    db: Session,
    pool: Pool,
    slot_key: str,
    team_a_score: Optional[int],
    team_b_score: Optional[int],
    status: str,
) -> CfpSlot:
    """Score a bracket game; a final result sends the winner on to the next slot."""
    slot = get_slot(db, pool, slot_key)
    validate_score_entry(team_a_score, team_b_score, status, slot.status)
    if slot.team_a_id is None or slot.team_b_id is None:
        raise ValueError("Both teams must be set before entering a score")

    evaluation = evaluate(GameOutcome(team_a_score, team_b_score, None, status))
    winner_id = None
    if evaluation.winner == HIGHER:
        winner_id = slot.team_a_id
    elif evaluation.winner == LOWER:
        winner_id = slot.team_b_id

    flow = BRACKET_FLOW.get(slot_key)
    next_slot = get_slot(db, pool, flow[0]) if flow else None
    if (
        next_slot
        and slot.winner_team_id is not None
        and winner_id != slot.winner_team_id
        and next_slot.status == FINAL
    ):
        raise ValueError(f"Cannot change this result: {next_slot.slot_key} is already final")

    slot.team_a_score = team_a_score
    slot.team_b_score = team_b_score
    slot.status = status
    slot.winner_team_id = winner_id
    slot.updated_at = datetime.now(UTC)
    db.add(slot)

    if next_slot and winner_id is not None and next_slot.status != FINAL:
        if flow[1] == "a":
            next_slot.team_a_id = winner_id
        else:
            next_slot.team_b_id = winner_id
        next_slot.updated_at = datetime.now(UTC)
        db.add(next_slot)

    db.commit()
    db.refresh(slot)
    if winner_id:
        logger.info("CFP slot %s final for pool %s: winner team %s", slot_key, pool.id, winner_id)
    return slot


def score_entry(picks: Dict[str, Optional[int]], slots: Dict[str, CfpSlot]) -> int:
    """One point per pick matching a decided slot's winner."""
    points = 0
    for key, team_id in picks.items():
        slot = slots.get(key)
        if slot and slot.status == FINAL and slot.winner_team_id and slot.winner_team_id == team_id:
            points += 1
    return points


def get_cfp_standings(db: Session, pool: Pool) -> List[Dict[str, Any]]:
    slots = get_slots(db, pool)
    entries = db.exec(select(PoolEntry).where(PoolEntry.pool_id == pool.id)).all()
    teams = {t.id: t.name for t in db.exec(select(Team)).all()}

    standings = []
    for entry in entries:
        picks = get_entry_picks(db, entry)
        standings.append({
            "entry_id": entry.id,
            "display_name": entry.display_name,
            "points": score_entry(picks, slots),
            "champion_pick": teams.get(picks.get("F")),
        })
    standings.sort(key=lambda s: (-s["points"], s["display_name"]))
    for rank, row in enumerate(standings, start=1):
        row["rank"] = rank
    return standings


# ---------------------------------------------------------------------------
# First-round team changes: preview the picks that would be lost, then confirm
# ---------------------------------------------------------------------------

def _picks_invalidated_by(db: Session, pool: Pool, slot: CfpSlot, team_a_id: int, team_b_id: int) -> List[CfpPick]:
    removed = {slot.team_a_id, slot.team_b_id} - {team_a_id, team_b_id} - {None}
    if not removed:
        return []
    entry_ids = [e.id for e in db.exec(select(PoolEntry).where(PoolEntry.pool_id == pool.id)).all()]
    if not entry_ids:
        return []
    return db.exec(
        select(CfpPick).where(
            CfpPick.entry_id.in_(entry_ids),
            CfpPick.picked_team_id.in_(removed)
        )
    ).all()


def preview_matchup_change(db: Session, pool: Pool, slot_key: str, team_a_id: int, team_b_id: int) -> Dict[str, Any]:
    if not slot_key.startswith("R1"):
        raise ValueError("Only first-round matchups can be changed")
    if team_a_id == team_b_id:
        raise ValueError("A game needs two different teams")
    for team_id in (team_a_id, team_b_id):
        if not db.get(Team, team_id):
            raise LookupError("Team not found")

    slot = get_slot(db, pool, slot_key)
    if slot.status != "scheduled":
        raise ValueError(f"{slot_key} has already started; its teams can no longer change")
    picks = _picks_invalidated_by(db, pool, slot, team_a_id, team_b_id)
    return {
        "slot_key": slot_key,
        "team_a_id": team_a_id,
        "team_b_id": team_b_id,
        "picks_to_delete": [
            {"pick_id": p.id, "entry_id": p.entry_id, "slot_key": p.slot_key, "picked_team_id": p.picked_team_id}
            for p in picks
        ],
        "pick_count": len(picks),
    }


def confirm_matchup_change(
    db: Session,
    pool: Pool,
    slot_key: str,
    team_a_id: int,
    team_b_id: int,
    expected_pick_count: Optional[int] = None,
) -> Dict[str, Any]:
    preview = preview_matchup_change(db, pool, slot_key, team_a_id, team_b_id)
    if expected_pick_count is not None and expected_pick_count != preview["pick_count"]:
        raise ValueError(
            f"Impact changed since preview ({preview['pick_count']} picks now affected); preview again"
        )

    slot = get_slot(db, pool, slot_key)
    for pick in _picks_invalidated_by(db, pool, slot, team_a_id, team_b_id):
        db.delete(pick)

    slot.team_a_id = team_a_id
    slot.team_b_id = team_b_id
    slot.updated_at = datetime.now(UTC)
    db.add(slot)
    db.commit()

    logger.info(
        "Changed %s teams for pool %s; deleted %d dependent picks",
        slot_key, pool.id, preview["pick_count"]
    )
    return {"success": True, "deleted_picks": preview["pick_count"]}
