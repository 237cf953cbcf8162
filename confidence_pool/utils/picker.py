"""
Picker identity for the confidence pool.

A picker is either a participant picking for themself or one of their
dependents. Both are keyed by the same pair so validation, storage and
scoring treat them uniformly.
"""

from collections import namedtuple


class Picker(namedtuple("Picker", ["participant_id", "dependent_id"])):
    __slots__ = ()

    @classmethod
    def for_self(cls, participant_id):
        return cls(participant_id, None)

    @classmethod
    def for_dependent(cls, participant_id, dependent_id):
        return cls(participant_id, dependent_id)

    @classmethod
    def of(cls, participant_id, dependent_id=None):
        if dependent_id is None:
            return cls.for_self(participant_id)
        return cls.for_dependent(participant_id, dependent_id)

    @property
    def is_dependent(self):
        return self.dependent_id is not None

    @property
    def kind(self):
        return "dependent" if self.is_dependent else "participant"

    @property
    def entity_id(self):
        """Id of whoever is picking: the dependent if there is one"""
        return self.dependent_id if self.is_dependent else self.participant_id
