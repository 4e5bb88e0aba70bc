from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from backend.app.core.config import settings, configure_logging, GameSettings
from backend.app.schemas.game_schema import GameCreate, GameResponse, MoveRequest
from backend.app.services.game_service import game_service, GameNotFoundError, InvalidMoveError

configure_logging(settings.log_level)

app = FastAPI(title="Connect N Bot")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],  # Vite and React defaults
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/settings", response_model=GameSettings)
async def get_default_settings():
    """Returns the default game settings."""
    return settings.game


# Sync endpoints run in the threadpool, the bot search takes seconds
@app.post("/games", response_model=GameResponse)
def create_game(game_data: GameCreate):
    session = game_service.create_game(game_data)
    return session.to_response()


@app.get("/games/{game_id}", response_model=GameResponse)
def get_game(game_id: int):
    try:
        session = game_service.get_game(game_id)
    except GameNotFoundError:
        raise HTTPException(status_code=404, detail="Game not found")
    return session.to_response()


@app.post("/games/{game_id}/moves", response_model=GameResponse)
def make_move(game_id: int, move: MoveRequest):
    """Plays a human move (0-indexed column); the bot answers in the same request."""
    try:
        session = game_service.process_human_move(game_id, move.column)
    except GameNotFoundError:
        raise HTTPException(status_code=404, detail="Game not found")
    except InvalidMoveError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.to_response()


@app.post("/games/{game_id}/concede", response_model=GameResponse)
def concede_game(game_id: int):
    try:
        session = game_service.concede(game_id)
    except GameNotFoundError:
        raise HTTPException(status_code=404, detail="Game not found")
    except InvalidMoveError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.to_response()
