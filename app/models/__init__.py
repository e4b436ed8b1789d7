# app/models/__init__.py

# Directory store (Flask-SQLAlchemy db.Model)
from .tenant import Tenant
from .idGenerator import IdGenerator
from .visitHistory import VisitHistory

# Tenant shards (ShardModel)
from .player import Player
from .competition import Competition
from .playerScore import PlayerScore


# Make them available when importing from this module
__all__ = ['Tenant', 'IdGenerator', 'VisitHistory', 'Player', 'Competition', 'PlayerScore']
