"""API dependencies.

Components are built once in the application lifespan and stored on
``app.state``; these getters hand them to HTTP and WebSocket endpoints.
"""

from typing import Annotated

from fastapi import Depends
from starlette.requests import HTTPConnection

from app.services.game_state import GameStateRepository
from app.services.leaderboard import LeaderboardService
from app.ws.manager import ConnectionManager
from app.ws.tally import LiveConnectionTally


def get_game_state(connection: HTTPConnection) -> GameStateRepository:
    return connection.app.state.game_state


def get_leaderboard(connection: HTTPConnection) -> LeaderboardService:
    return connection.app.state.leaderboard


def get_connection_manager(connection: HTTPConnection) -> ConnectionManager:
    return connection.app.state.connection_manager


def get_tally(connection: HTTPConnection) -> LiveConnectionTally:
    return connection.app.state.tally


GameStateDep = Annotated[GameStateRepository, Depends(get_game_state)]
LeaderboardDep = Annotated[LeaderboardService, Depends(get_leaderboard)]
ConnectionManagerDep = Annotated[ConnectionManager, Depends(get_connection_manager)]
TallyDep = Annotated[LiveConnectionTally, Depends(get_tally)]
