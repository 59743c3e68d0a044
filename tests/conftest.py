"""Shared fixtures: a match wired on virtual time with seeded randomness."""
import random

import pytest

from duel.core.clock import VirtualClock
from duel.core.combat_system.models import CombatTuning, new_enemy, new_player
from duel.core.combat_system.resolver import AttackResolver
from duel.core.state import MatchState


# Tuning senza hit-stop: i test sui tempi non devono considerare i freeze
QUIET = CombatTuning(hit_stop_enabled=False)


class Rolls:
    """Stand-in RNG returning a fixed sequence for random() and the first item for choice()."""

    def __init__(self, *values):
        self.values = list(values) or [0.0]

    def random(self):
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]

    def choice(self, seq):
        return seq[0]


def build_match(tuning=QUIET, opponent_index=0, rng=None):
    clock = VirtualClock()
    match = MatchState(
        opponent_index=opponent_index,
        player=new_player(tuning),
        enemy=new_enemy(tuning, opponent_index),
    )
    resolver = AttackResolver(match, clock, tuning, rng=rng or random.Random(7))
    return clock, match, resolver


@pytest.fixture
def duel():
    return build_match()
