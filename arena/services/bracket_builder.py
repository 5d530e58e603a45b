"""
Single elimination bracket generation.

The builder turns a seeded roster into a flat list of matches wired together
by parent/child ids. It never reorders the roster: shuffling, if wanted, is the
caller's business.
"""
import math
from typing import List, Optional, Tuple

from arena.core.errors import InvalidRosterSize, ValidationError
from arena.models.bracket_model import BracketModel, MatchModel, MatchStatus, PlayerSlot
from arena.models.event_model import DomainEvent
from arena.models.tournament_model import SeedingMode, TournamentFormat
from arena.services.progression import ProgressionEngine


def get_round_name(players_in_round: int) -> str:
    """Get the name of a round based on how many players enter it."""
    if players_in_round == 2:
        return "Final"
    elif players_in_round == 4:
        return "Semifinal"
    elif players_in_round == 8:
        return "Quarterfinal"
    return f"Round of {players_in_round}"


def next_power_of_two(n: int) -> int:
    if n <= 1:
        return 1
    return 2 ** math.ceil(math.log2(n))


def standard_bracket_order(bracket_size: int) -> List[int]:
    """
    Seed numbers by bracket position so that top seeds meet as late as possible.

    For 8 entries: [1, 8, 4, 5, 2, 7, 3, 6], giving 1v8, 4v5, 2v7, 3v6.
    """
    if bracket_size == 1:
        return [1]
    if bracket_size == 2:
        return [1, 2]
    upper_half = standard_bracket_order(bracket_size // 2)
    order = []
    for seed in upper_half:
        order.extend([seed, bracket_size + 1 - seed])
    return order


def seed_entries(roster: List[str], bracket_size: int, seeding: SeedingMode = SeedingMode.SEQUENTIAL) -> List[PlayerSlot]:
    """Lay the roster and its Byes out over the bracket's leaf slots."""
    if SeedingMode(seeding) == SeedingMode.STANDARD:
        entries = []
        for seed in standard_bracket_order(bracket_size):
            entries.append(PlayerSlot.of(roster[seed - 1]) if seed <= len(roster) else PlayerSlot.bye())
        return entries
    # sequential: seed order left to right, Byes take the highest slots
    return [PlayerSlot.of(pid) for pid in roster] + [PlayerSlot.bye() for _ in range(bracket_size - len(roster))]


def build_single_elimination(tournament_id: str,
                             roster: List[str],
                             seeding: SeedingMode = SeedingMode.SEQUENTIAL,
                             third_place_match: bool = False) -> BracketModel:
    """
    Build the match tree for a roster, without settling any Byes.

    A bracket of N entries gets N/2 first round matches and N - 1 matches in
    total; every match above the first round has exactly two children.
    """
    if len(roster) < 2:
        raise InvalidRosterSize(details={"roster_size": len(roster)})
    if len(set(roster)) != len(roster):
        raise ValidationError("Roster contains the same participant twice.")

    bracket_size = next_power_of_two(len(roster))
    entries = seed_entries(roster, bracket_size, seeding)

    bracket = BracketModel(
        tournament_id=tournament_id,
        tournament_format=TournamentFormat.SINGLE_ELIMINATION.value,
        seeding=SeedingMode(seeding).value,
        bracket_size=bracket_size,
        entries=entries,
    )

    # --- Round 1: pair adjacent entry slots ---
    round_number = 1
    current_round: List[MatchModel] = []
    for i in range(bracket_size // 2):
        slots = [entries[2 * i].model_copy(), entries[2 * i + 1].model_copy()]
        match = MatchModel(
            tournament_id=tournament_id,
            round_number=round_number,
            round_name=get_round_name(bracket_size),
            position=i + 1,
            slots=slots,
            status=MatchStatus.SCHEDULED if all(s.is_participant for s in slots) else MatchStatus.PENDING,
        )
        current_round.append(match)
    bracket.matches.extend(current_round)
    bracket.rounds_structure[round_number] = [m.id for m in current_round]

    # --- Later rounds: one parent per pair of matches, slots TBD ---
    players_in_round = bracket_size // 2
    while len(current_round) > 1:
        round_number += 1
        next_round: List[MatchModel] = []
        for i in range(0, len(current_round), 2):
            first, second = current_round[i], current_round[i + 1]
            parent = MatchModel(
                tournament_id=tournament_id,
                round_number=round_number,
                round_name=get_round_name(players_in_round),
                position=len(next_round) + 1,
                child_match_ids=[first.id, second.id],
            )
            first.parent_match_id, first.parent_slot_index = parent.id, 0
            second.parent_match_id, second.parent_slot_index = parent.id, 1
            next_round.append(parent)
        bracket.matches.extend(next_round)
        bracket.rounds_structure[round_number] = [m.id for m in next_round]
        current_round = next_round
        players_in_round //= 2

    root = current_round[0]
    bracket.root_match_id = root.id

    if third_place_match and bracket_size >= 4:
        playoff = MatchModel(
            tournament_id=tournament_id,
            round_number=round_number,
            round_name="Third Place",
            position=2,
            is_third_place=True,
        )
        for index, child_id in enumerate(root.child_match_ids):
            semifinal = bracket.get_match(child_id)
            semifinal.loser_next_match_id = playoff.id
            semifinal.loser_slot_index = index
        bracket.matches.append(playoff)
        bracket.rounds_structure[round_number].append(playoff.id)
        bracket.third_place_match_id = playoff.id

    return bracket


def generate(tournament_id: str,
             roster: List[str],
             seeding: SeedingMode = SeedingMode.SEQUENTIAL,
             third_place_match: bool = False,
             engine: Optional[ProgressionEngine] = None) -> Tuple[BracketModel, List[DomainEvent]]:
    """Build the bracket and settle every Bye through the progression rules."""
    bracket = build_single_elimination(tournament_id, roster, seeding, third_place_match)
    engine = engine or ProgressionEngine(bracket)
    engine.bracket = bracket
    engine.resolve_byes()
    return bracket, engine.events
