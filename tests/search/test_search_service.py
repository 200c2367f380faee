from __future__ import annotations

import pytest

from chesstutor.engine.legality import legal_moves
from chesstutor.engine.position import Position
from chesstutor.engine.terminal import TerminalKind
from chesstutor.search.ordering import order_moves, order_score
from chesstutor.search.service import (
    MATE_SCORE,
    DifficultyHints,
    SearchService,
    best_move,
    mate_distance,
    plain_negamax,
)


FULL_WIDTH = DifficultyHints(level=5, depth=1, root_move_cap=None)
KIWIPETE = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"


def test_search_returns_legal_move_startpos() -> None:
    p = Position.startpos()
    res = SearchService().search(p, depth=2)
    assert res.best_move is not None
    assert res.best_move in legal_moves(p), "best move must be legal"
    assert res.pv and res.pv[0] == res.best_move
    assert res.nodes > 0
    assert res.depth == 2


def test_search_returns_legal_move_midgame() -> None:
    p = Position.from_fen(KIWIPETE)
    res = SearchService().search(p, depth=2)
    assert res.best_move is not None
    assert res.best_move in legal_moves(p)


def test_finds_back_rank_mate_in_one() -> None:
    p = Position.from_fen("6k1/5ppp/8/8/8/8/8/3R2K1 w - - 0 1")
    res = SearchService().search(p, depth=1, hints=FULL_WIDTH)
    assert res.best_move is not None and res.best_move.to_uci() == "d1d8"
    assert res.score == MATE_SCORE - 1
    assert res.mate_in == 1


def test_finds_scholars_mate() -> None:
    p = Position.from_fen("r1bqkb1r/pppp1ppp/2n2n2/4p2Q/2B1P3/8/PPPP1PPP/RNB1K1NR w KQkq - 4 4")
    res = best_move(p, depth=2)
    assert res.best_move is not None and res.best_move.to_uci() == "h5f7"
    assert res.mate_in == 1


def test_wins_hanging_piece() -> None:
    p = Position.from_fen("4k3/8/8/2n5/3B4/8/8/4K3 w - - 0 1")
    res = SearchService().search(p, depth=1)
    assert res.best_move is not None and res.best_move.to_uci() == "d4c5"


@pytest.mark.parametrize(
    ("fen", "depth"),
    [
        ("4k3/8/8/2n5/3B4/8/8/4K3 w - - 0 1", 2),
        ("4k3/8/8/3q1p2/4P3/8/8/4K3 w - - 0 1", 2),
        ("6k1/5ppp/8/8/8/8/8/3R2K1 w - - 0 1", 2),
        ("4k3/8/8/8/8/8/8/R3K3 b - - 0 1", 3),
        (KIWIPETE, 2),
    ],
)
def test_alpha_beta_matches_plain_negamax(fen: str, depth: int) -> None:
    p = Position.from_fen(fen)
    hints = DifficultyHints(level=5, depth=depth, root_move_cap=None)
    res = SearchService().search(p, hints=hints)
    assert res.score == plain_negamax(p, depth)


def test_search_leaves_position_unchanged() -> None:
    p = Position.from_fen(KIWIPETE)
    fen, h = p.to_fen(), p.zobrist_hash
    SearchService().search(p, depth=2)
    assert p.to_fen() == fen
    assert p.zobrist_hash == h


def test_search_restores_position_when_evaluator_raises() -> None:
    p = Position.startpos()
    fen = p.to_fen()

    def broken(_: Position) -> int:
        raise RuntimeError("evaluator failed")

    with pytest.raises(RuntimeError):
        SearchService(evaluator=broken).search(p, depth=2)
    assert p.to_fen() == fen


def test_stalemate_root_returns_no_move() -> None:
    p = Position.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    res = SearchService().search(p, depth=2)
    assert res.best_move is None
    assert res.score == 0
    assert res.terminal.kind is TerminalKind.STALEMATE


def test_checkmated_root_returns_no_move() -> None:
    p = Position.from_fen("7k/6Q1/6K1/8/8/8/8/8 b - - 0 1")
    res = SearchService().search(p, depth=2)
    assert res.best_move is None
    assert res.score == -MATE_SCORE
    assert res.terminal.kind is TerminalKind.CHECKMATE


def test_depth_must_be_positive() -> None:
    with pytest.raises(ValueError):
        SearchService().search(Position.startpos(), depth=0)


@pytest.mark.parametrize(
    ("level", "depth", "cap"),
    [(1, 1, 10), (2, 1, 10), (3, 2, 15), (4, 3, 15), (5, 4, None)],
)
def test_difficulty_mapping(level: int, depth: int, cap: int | None) -> None:
    hints = DifficultyHints.from_level(level)
    assert hints.depth == depth
    assert hints.root_move_cap == cap


@pytest.mark.parametrize("level", [0, 6])
def test_difficulty_out_of_range(level: int) -> None:
    with pytest.raises(ValueError):
        DifficultyHints.from_level(level)


def test_mate_distance() -> None:
    assert mate_distance(MATE_SCORE - 1) == 1
    assert mate_distance(MATE_SCORE - 3) == 2
    assert mate_distance(-(MATE_SCORE - 2)) == -1
    assert mate_distance(250) is None


def test_ordering_prefers_queen_capture() -> None:
    p = Position.from_fen("4k3/8/8/3q1p2/4P3/8/8/4K3 w - - 0 1")
    ordered = order_moves(legal_moves(p))
    assert ordered[0].to_uci() == "e4d5"
    assert ordered[1].to_uci() == "e4f5"


def test_ordering_rewards_development_and_centre() -> None:
    p = Position.startpos()
    by_uci = {m.to_uci(): m for m in legal_moves(p)}
    assert order_score(by_uci["g1f3"]) > order_score(by_uci["g1h3"])
    assert order_score(by_uci["e2e4"]) > order_score(by_uci["a2a3"])


def test_root_cap_limits_ordered_moves() -> None:
    p = Position.startpos()
    assert len(order_moves(legal_moves(p), cap=10)) == 10
    assert len(order_moves(legal_moves(p))) == 20
