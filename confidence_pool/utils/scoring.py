"""
Scoring Engine for the confidence pool

Scores every picker in a pool against the winners of completed games and
ranks them. A picker is a participant picking for themself or one of their
dependents; each is scored as an independent entry.
"""

from collections import defaultdict

from confidence_pool.utils.cache_utils import cached_standings
from confidence_pool.utils.performance import timer
from confidence_pool.utils.picker import Picker


def total_available_points(total_games):
    """Triangular number: every value 1..total_games used once and all correct"""
    return total_games * (total_games + 1) // 2


def compute_picker_score(picks, completed_winners, total_games):
    """
    Score one picker's picks.

    Args:
        picks: the picker's picks (anything with game_id, selected_team and
            confidence_points attributes)
        completed_winners: {game_id: winner} for every completed game
        total_games: the pool's configured game count

    Returns:
        dict with earned_points, lost_points, possible_points, correct_picks,
        total_picks and completed_picks
    """
    earned = 0
    lost = 0
    correct = 0
    completed = 0
    total = 0

    for pick in picks:
        total += 1
        if pick.game_id not in completed_winners:
            continue

        completed += 1
        if pick.selected_team == completed_winners[pick.game_id]:
            earned += pick.confidence_points
            correct += 1
        else:
            lost += pick.confidence_points

    return {
        "earned_points": earned,
        "lost_points": lost,
        "possible_points": total_available_points(total_games) - lost,
        "correct_picks": correct,
        "total_picks": total,
        "completed_picks": completed,
    }


def rank_standings(entries):
    """
    Order score entries and number them.

    Earned points descending, then possible points descending. Entries tied on
    both keep their incoming order and still get consecutive ranks.
    """
    ranked = sorted(
        entries,
        key=lambda e: (e["earned_points"], e["possible_points"]),
        reverse=True,
    )
    # sorted(reverse=True) keeps equal keys in their original order
    for index, entry in enumerate(ranked):
        entry["rank"] = index + 1
    return ranked


def group_picks_by_picker(picks):
    grouped = defaultdict(list)
    for pick in picks:
        grouped[Picker.of(pick.participant_id, pick.dependent_id)].append(pick)
    return grouped


def picker_entry(picker, participant, dependent=None):
    """Identity fields shared by standings and pick summaries"""
    entry = {
        "picker_id": picker.entity_id,
        "picker_type": picker.kind,
        "participant_id": picker.participant_id,
        "dependent_id": picker.dependent_id,
        "is_dependent": picker.is_dependent,
        "display_name": participant.full_name,
    }
    if dependent is not None:
        entry.update(
            {
                "display_name": dependent.display_name,
                "parent_id": participant.id,
                "parent_name": participant.full_name,
            }
        )
    return entry


def score_pool(pool, games, picks, participants):
    """
    Compute ranked standings for a pool from already loaded rows.

    Every participant gets a self entry and one entry per dependent, whether
    or not they have picked yet.
    """
    total_games = pool.total_games or 13
    completed_winners = {g.id: g.winner for g in games if g.is_complete}
    picks_by_picker = group_picks_by_picker(picks)

    entries = []
    for participant in participants:
        picker = Picker.for_self(participant.id)
        entry = picker_entry(picker, participant)
        entry.update(
            compute_picker_score(
                picks_by_picker.get(picker, []), completed_winners, total_games
            )
        )
        entries.append(entry)

        for dependent in participant.dependents:
            picker = Picker.for_dependent(participant.id, dependent.id)
            entry = picker_entry(picker, participant, dependent)
            entry.update(
                compute_picker_score(
                    picks_by_picker.get(picker, []), completed_winners, total_games
                )
            )
            entries.append(entry)

    return {
        "pool_id": pool.id,
        "pool_name": pool.name,
        "completed_games": len(completed_winners),
        "games_created": len(games),
        "total_games": total_games,
        "total_available_points": total_available_points(total_games),
        "standings": rank_standings(entries),
    }


@cached_standings
@timer
def build_standings(pool):
    """Load a pool's games, picks and members and compute its standings"""
    from confidence_pool.models import Game, Pick

    games = Game.get_games_for_pool(pool.id)
    picks = Pick.query.filter_by(pool_id=pool.id).all()
    return score_pool(pool, games, picks, pool.get_participants())


def find_picker_standing(standings, picker):
    """The ranked entry for a picker, or None"""
    for entry in standings["standings"]:
        if (
            entry["participant_id"] == picker.participant_id
            and entry["dependent_id"] == picker.dependent_id
        ):
            return entry
    return None
