from confidence_pool import db  # noqa: F401 - imported for model imports

from .admin_action import AdminAction
from .game import ROUNDS, Game
from .participant import Dependent, Participant
from .pick import Pick
from .pool import ActivePool, Pool
from .pool_member import PoolMember

__all__ = [
    "ROUNDS",
    "Participant",
    "Dependent",
    "Pool",
    "ActivePool",
    "PoolMember",
    "Game",
    "Pick",
    "AdminAction",
]
