"""
Shared path computations for one analysis request.

The matrix, impact and transit analyses all ask the same questions about the
same (source, target) pairs. PathCache answers each one once: a single
Dijkstra tree per source serves every shortest cost/best path from that
source, and one enumeration per ordered pair serves every consumer of ranked
alternates. Create one cache per snapshot per request and drop it afterwards.
"""

from __future__ import annotations

from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from .algorithms import PathEnumerator, ShortestPathEngine
from .config import EngineConfig
from .dijkstra_engine import SimpleDijkstraEngine, path_from_tree
from .graph import DirectedEdge, Graph
from .path_enumerator import DepthFirstPathEnumerator
from .paths import Path, PathSet
from .topology import UnknownNodeError

logger = logging.getLogger(__name__)

Pair = Tuple[str, str]
Tree = Tuple[Dict[str, float], Dict[str, DirectedEdge]]


class PathCache:
    """
    Memoizing front end over a shortest-path engine and a path enumerator.

    Not thread-safe for concurrent writers; use ``prefetch`` to fan work out
    to threads, which records results from the calling thread only.
    """

    def __init__(
        self,
        graph: Graph,
        config: Optional[EngineConfig] = None,
        engine: Optional[ShortestPathEngine] = None,
        enumerator: Optional[PathEnumerator] = None,
    ) -> None:
        self.graph = graph
        self.config = config or EngineConfig()
        self.engine = engine or SimpleDijkstraEngine()
        self.enumerator = enumerator or DepthFirstPathEnumerator(
            default_limit=self.config.path_limit,
            exploration_budget=self.config.exploration_budget,
        )
        self._trees: Dict[str, Tree] = {}
        self._path_sets: Dict[Pair, PathSet] = {}
        self.hits = 0
        self.misses = 0

    # --- Shortest paths (one Dijkstra per source) ---------------------------

    def tree(self, source: str) -> Tree:
        cached = self._trees.get(source)
        if cached is not None:
            self.hits += 1
            return cached
        self.misses += 1
        tree = self.engine.shortest_paths(self.graph, source)
        self._trees[source] = tree
        return tree

    def shortest_cost(self, source: str, target: str) -> Optional[float]:
        """Minimal cost, or None when target is unreachable from source."""
        if not self.graph.has_node(target):
            raise UnknownNodeError(target)
        if source == target:
            return 0
        dist, _prev = self.tree(source)
        return dist.get(target)

    def best_path(self, source: str, target: str) -> Optional[Path]:
        if not self.graph.has_node(target):
            raise UnknownNodeError(target)
        if source == target:
            if not self.graph.has_node(source):
                raise UnknownNodeError(source)
            return Path.trivial(source)
        _dist, prev = self.tree(source)
        return path_from_tree(source, target, prev)

    # --- Ranked alternates (one enumeration per pair) -----------------------

    def path_set(self, source: str, target: str) -> PathSet:
        key = (source, target)
        cached = self._path_sets.get(key)
        if cached is not None:
            self.hits += 1
            return cached
        self.misses += 1
        result = self.enumerator.find_paths(self.graph, source, target, self.config.path_limit)
        self._path_sets[key] = result
        return result

    def path_sets(self, pairs: Iterable[Pair]) -> List[PathSet]:
        return [self.path_set(s, t) for s, t in pairs]

    # --- Bookkeeping ---------------------------------------------------------

    def store_tree(self, source: str, tree: Tree) -> None:
        self._trees.setdefault(source, tree)

    def store_path_set(self, path_set: PathSet) -> None:
        self._path_sets.setdefault((path_set.source, path_set.target), path_set)

    def has_tree(self, source: str) -> bool:
        return source in self._trees

    def has_path_set(self, source: str, target: str) -> bool:
        return (source, target) in self._path_sets

    def log_stats(self) -> None:
        logger.debug(
            "Path cache: %d tree(s), %d path set(s), %d hit(s), %d miss(es)",
            len(self._trees),
            len(self._path_sets),
            self.hits,
            self.misses,
        )


def prefetch(
    cache: PathCache,
    pairs: Sequence[Pair],
    max_workers: int = 4,
    executor: Optional[Executor] = None,
    include_alternates: bool = False,
) -> None:
    """
    Fill ``cache`` for ``pairs`` using a pool of workers.

    Parameters
    ----------
    cache:
        Cache to fill. Entries already present are not recomputed.
    pairs:
        Ordered (source, target) pairs that will be queried afterwards.
    max_workers:
        Size of the internal :class:`ThreadPoolExecutor` when ``executor`` is
        None.
    executor:
        Optional external executor. When provided, ``max_workers`` is ignored
        and the caller owns its lifetime.
    include_alternates:
        Also run the multi-path enumerator for every pair, not just one
        Dijkstra per distinct source.

    Notes
    -----
    Each unit of work is independent and pure; workers only read the graph.
    Results are written into the cache from the calling thread as futures
    complete, so the cache itself never sees concurrent writers. There is no
    cancellation: once submitted, every unit runs to completion.
    """
    if executor is None:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            _prefetch_with_executor(cache, pairs, pool, include_alternates)
        return
    _prefetch_with_executor(cache, pairs, executor, include_alternates)


def _prefetch_with_executor(
    cache: PathCache,
    pairs: Sequence[Pair],
    executor: Executor,
    include_alternates: bool,
) -> None:
    sources = sorted({s for s, _t in pairs if not cache.has_tree(s)})
    tree_futures = {
        source: executor.submit(cache.engine.shortest_paths, cache.graph, source)
        for source in sources
    }

    pair_futures = {}
    if include_alternates:
        for s, t in pairs:
            if (s, t) in pair_futures or cache.has_path_set(s, t):
                continue
            pair_futures[(s, t)] = executor.submit(
                cache.enumerator.find_paths, cache.graph, s, t, cache.config.path_limit
            )

    # Collect in submission order so the cache contents do not depend on
    # completion order.
    for source, future in tree_futures.items():
        cache.store_tree(source, future.result())
    for future in pair_futures.values():
        cache.store_path_set(future.result())

    logger.debug(
        "Prefetched %d tree(s) and %d path set(s)", len(tree_futures), len(pair_futures)
    )
