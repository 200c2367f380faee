from __future__ import annotations

import logging
import random
from typing import Any, Callable, Dict, List, Literal, Optional, TypeVar

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, Field, model_validator
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from chesstutor.book import open_book
from chesstutor.book.opening_book import OpeningBook
from chesstutor.config import Settings
from chesstutor.engine.game import Game
from chesstutor.engine.legality import find_legal_move
from chesstutor.engine.move import Move, parse_promotion, parse_uci, str_to_square
from chesstutor.engine.perft import perft as perft_nodes
from chesstutor.engine.pieces import Color
from chesstutor.engine.position import Position
from chesstutor.engine.terminal import TerminalKind
from chesstutor.errors import ChessTutorError
from chesstutor.eval import evaluate, evaluate_white, game_phase
from chesstutor.protocol.http.error import (
    domain_exception_handler,
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from chesstutor.protocol.http.logging_middleware import RequestIDLoggingMiddleware
from chesstutor.protocol.http.session import GameSession, InMemorySessionStore
from chesstutor.search.opponent import ComputerOpponent
from chesstutor.search.service import DifficultyHints, SearchResult, SearchService
from chesstutor.tutor.analysis import analyze_move


logger = logging.getLogger(__name__)

T = TypeVar("T")


class CreateGameRequest(BaseModel):
    difficulty: Optional[int] = Field(default=None, ge=1, le=5)
    ai_color: Optional[Literal["white", "black"]] = None
    fen: Optional[str] = Field(default=None, description="Start from this FEN")


class CreateGameResponse(BaseModel):
    game_id: str
    fen: str
    difficulty: int
    ai_color: Optional[str]


class SetPositionRequest(BaseModel):
    fen: str = Field(..., description="FEN string")


class ResetRequest(BaseModel):
    fen: Optional[str] = None


class MoveRequest(BaseModel):
    """Either ``move`` in UCI form or ``from``/``to`` squares (plus ``promotion``)."""

    model_config = ConfigDict(populate_by_name=True)

    move: Optional[str] = Field(default=None, description="UCI move string, e.g., e2e4")
    from_sq: Optional[str] = Field(default=None, alias="from")
    to_sq: Optional[str] = Field(default=None, alias="to")
    promotion: Optional[str] = Field(default=None, min_length=1, max_length=1)

    @model_validator(mode="after")
    def _one_form(self) -> "MoveRequest":
        if self.move is None and (self.from_sq is None or self.to_sq is None):
            raise ValueError("either 'move' or both 'from' and 'to' are required")
        return self


class SearchRequest(BaseModel):
    depth: Optional[int] = Field(default=None, ge=1, le=6)
    difficulty: Optional[int] = Field(default=None, ge=1, le=5)


class PerftRequest(BaseModel):
    fen: str = Field(..., description="FEN string")
    depth: int = Field(default=1, ge=0, le=5)


class GameState(BaseModel):
    game_id: str
    fen: str
    side_to_move: str
    legal_moves: List[str]
    in_check: bool
    status: str
    winner: Optional[str]
    checkmate: bool
    stalemate: bool
    draw: bool
    last_move: Optional[str]
    move_history: List[str]
    move_history_san: List[str]
    captured: Dict[str, List[str]]
    difficulty: int
    ai_color: Optional[str]


class MoveQualityModel(BaseModel):
    score: int
    rating: str
    move_type: str
    eval_change: float


class MoveAnalysisModel(BaseModel):
    themes: List[str]
    principles: List[str]
    mistakes: List[str]
    suggestions: List[str]


class MoveResponse(BaseModel):
    move: str
    san: str
    quality: MoveQualityModel
    analysis: MoveAnalysisModel
    state: GameState


class AiMoveResponse(BaseModel):
    move: str
    san: str
    source: str
    score: int
    depth: int
    nodes: int
    state: GameState


def _color_name(color: Optional[Color]) -> Optional[str]:
    return color.name.lower() if color is not None else None


def _state(game_id: str, session: GameSession) -> GameState:
    game = session.game
    terminal = game.terminal()
    history = game.move_history_uci()
    return GameState(
        game_id=game_id,
        fen=game.to_fen(),
        side_to_move=game.position.side_to_move.name.lower(),
        legal_moves=[m.to_uci() for m in game.legal_moves()],
        in_check=game.in_check(),
        status=terminal.kind.value,
        winner=_color_name(terminal.winner),
        checkmate=terminal.kind is TerminalKind.CHECKMATE,
        stalemate=terminal.kind is TerminalKind.STALEMATE,
        draw=terminal.is_draw,
        last_move=history[-1] if history else None,
        move_history=history,
        move_history_san=game.move_history_san(),
        captured={
            color.name.lower(): [p.char for p in pieces]
            for color, pieces in game.captured_pieces().items()
        },
        difficulty=session.difficulty,
        ai_color=_color_name(session.ai_color),
    )


def _score_payload(res: SearchResult) -> Dict[str, int]:
    # Score object: either cp or mate (UCI-style); a mated root reports mate 0
    if res.best_move is None:
        return {"mate": 0} if res.terminal.kind is TerminalKind.CHECKMATE else {"cp": 0}
    if res.mate_in is not None:
        return {"mate": res.mate_in}
    return {"cp": res.score}


def _resolve_request(position: Position, req: MoveRequest) -> Move:
    if req.move is not None:
        wanted = parse_uci(req.move)
    else:
        promotion = parse_promotion(req.promotion) if req.promotion else None
        wanted = Move(str_to_square(req.from_sq or ""), str_to_square(req.to_sq or ""), promotion)
    return find_legal_move(position, wanted.from_sq, wanted.to_sq, wanted.promotion)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.load()
    app = FastAPI(title="Chess Tutor API", version="0.1.0")

    # Basic logging setup
    logging.basicConfig(level=settings.log_level)

    # Middleware & error handling
    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(ChessTutorError, domain_exception_handler)
    app.add_exception_handler(Exception, exception_handler)

    book: Optional[OpeningBook] = open_book(settings.book_path) if settings.book_enabled else None
    store = InMemorySessionStore()
    search_service = SearchService()
    app.state.settings = settings
    app.state.sessions = store

    def new_opponent(level: int) -> ComputerOpponent:
        seed = settings.book_seed
        return ComputerOpponent(
            hints=DifficultyHints.from_level(level),
            book=book,
            rng=random.Random(seed) if seed is not None else random.Random(),
            service=search_service,
            book_max_plies=settings.book_max_plies,
        )

    async def locked(session: GameSession, fn: Callable[[], T]) -> T:
        # Engine work runs off the event loop, one request per session at a time
        def run() -> T:
            with session.lock:
                return fn()

        return await run_in_threadpool(run)

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        req = req or CreateGameRequest()
        game = Game.new() if req.fen is None else Game.from_fen(req.fen)
        level = req.difficulty or settings.default_difficulty
        ai_color = Color.WHITE if req.ai_color == "white" else Color.BLACK if req.ai_color else None
        session = GameSession(game=game, opponent=new_opponent(level), ai_color=ai_color)
        game_id = store.create(session)
        logger.info("game created", extra={"game_id": game_id, "difficulty": level})
        return CreateGameResponse(
            game_id=game_id,
            fen=game.to_fen(),
            difficulty=level,
            ai_color=_color_name(ai_color),
        )

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        session = _require_session(store, game_id)
        return await locked(session, lambda: _state(game_id, session))

    @app.post("/api/games/{game_id}/reset", response_model=GameState)
    async def reset(game_id: str, req: Optional[ResetRequest] = None) -> GameState:
        session = _require_session(store, game_id)
        fen = req.fen if req is not None else None

        def run() -> GameState:
            session.game.reset(fen)
            return _state(game_id, session)

        return await locked(session, run)

    @app.post("/api/games/{game_id}/position", response_model=GameState)
    async def set_position(game_id: str, req: SetPositionRequest) -> GameState:
        session = _require_session(store, game_id)

        def run() -> GameState:
            session.game.reset(req.fen)
            return _state(game_id, session)

        return await locked(session, run)

    @app.post("/api/games/{game_id}/move", response_model=MoveResponse)
    async def make_move(game_id: str, req: MoveRequest) -> MoveResponse:
        session = _require_session(store, game_id)

        def run() -> MoveResponse:
            game = session.game
            move = _resolve_request(game.position, req)
            analysis = analyze_move(game, move)
            quality = analysis.quality
            played = game.apply_move(move)
            return MoveResponse(
                move=played.to_uci(),
                san=game.notation_stack[-1],
                quality=MoveQualityModel(
                    score=quality.score,
                    rating=quality.rating,
                    move_type=quality.move_type,
                    eval_change=quality.eval_change,
                ),
                analysis=MoveAnalysisModel(
                    themes=analysis.themes,
                    principles=analysis.principles,
                    mistakes=analysis.mistakes,
                    suggestions=analysis.suggestions,
                ),
                state=_state(game_id, session),
            )

        return await locked(session, run)

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    async def undo(game_id: str) -> GameState:
        session = _require_session(store, game_id)

        def run() -> GameState:
            try:
                session.game.undo_move()
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _state(game_id, session)

        return await locked(session, run)

    @app.post("/api/games/{game_id}/ai-move", response_model=AiMoveResponse)
    async def ai_move(game_id: str) -> AiMoveResponse:
        session = _require_session(store, game_id)

        def run() -> AiMoveResponse:
            res = session.opponent.play(session.game)
            return AiMoveResponse(
                move=session.game.move_history_uci()[-1],
                san=session.game.notation_stack[-1],
                source=res.source,
                score=res.score,
                depth=res.depth,
                nodes=res.nodes,
                state=_state(game_id, session),
            )

        return await locked(session, run)

    @app.post("/api/games/{game_id}/search")
    async def search(game_id: str, req: Optional[SearchRequest] = None) -> Dict[str, Any]:
        session = _require_session(store, game_id)
        req = req or SearchRequest()
        level = req.difficulty or session.difficulty
        hints = DifficultyHints.from_level(level)

        def run() -> SearchResult:
            return search_service.search(session.game.position, depth=req.depth, hints=hints)

        res = await locked(session, run)
        return {
            "best_move": res.best_move.to_uci() if res.best_move else None,
            "score": _score_payload(res),
            "pv": [m.to_uci() for m in res.pv],
            "nodes": res.nodes,
            "depth": res.depth,
            "time_ms": res.time_ms,
            "status": res.terminal.kind.value,
        }

    @app.get("/api/games/{game_id}/evaluate")
    async def evaluate_position(game_id: str) -> Dict[str, Any]:
        session = _require_session(store, game_id)

        def run() -> Dict[str, Any]:
            position = session.game.position
            return {
                "score": evaluate(position),
                "white_score": evaluate_white(position),
                "side_to_move": _color_name(position.side_to_move),
                "phase": game_phase(position),
            }

        return await locked(session, run)

    @app.post("/api/perft")
    async def perft(req: PerftRequest) -> Dict[str, Any]:
        position = Position.from_fen(req.fen)
        nodes = await run_in_threadpool(perft_nodes, position, req.depth)
        return {"nodes": nodes, "depth": req.depth}

    return app


def _require_session(store: InMemorySessionStore, game_id: str) -> GameSession:
    session = store.get(game_id)
    if session is None:
        raise HTTPException(status_code=404, detail="game not found")
    return session


# Default app for non-factory servers
app = create_app()
