"""Core engine components: board and rules, evaluator, search."""

from .board import Board, Side
from .evaluator import Evaluator
from .search import Difficulty, SearchEngine, SearchResult
