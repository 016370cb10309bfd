"""Composition graph construction and coupling metrics (networkx DiGraph)."""

import logging
from collections.abc import Sequence

import networkx as nx

from reducer_health.domain.entities import CompositionGraph, FeatureFact, NodeMetrics
from reducer_health.domain.errors import InternalInvariantViolation

logger = logging.getLogger(__name__)


class CompositionGraphBuilder:
    """
    Builds one directed graph over the whole corpus.

    Nodes are FeatureFact identifiers; an edge A -> B exists for each child
    reference in A naming unit B. References to names absent from the corpus
    are kept as dangling edges. Requires every fact-sheet up front.
    """

    def build(self, facts: Sequence[FeatureFact]) -> CompositionGraph:
        identifiers = [f.identifier for f in facts]
        if len(set(identifiers)) != len(identifiers):
            duplicates = sorted({i for i in identifiers if identifiers.count(i) > 1})
            raise InternalInvariantViolation(
                f"Duplicate unit identifiers reached the graph builder: {', '.join(duplicates)}"
            )

        graph: nx.DiGraph = nx.DiGraph()
        graph.add_nodes_from(sorted(identifiers))
        known = set(identifiers)
        dangling: list[tuple[str, str]] = []
        for fact in facts:
            for child in fact.children:
                if child in known:
                    graph.add_edge(fact.identifier, child)
                else:
                    dangling.append((fact.identifier, child))

        cycles, cyclic_nodes = self._cycles(graph)
        metrics = tuple(
            NodeMetrics(
                identifier=node,
                fan_in=graph.in_degree(node),
                fan_out=graph.out_degree(node),
                subtree_size=len(nx.descendants(graph, node)),
                in_cycle=node in cyclic_nodes,
            )
            for node in sorted(graph.nodes)
        )
        logger.debug(
            "Built composition graph with %s nodes, %s edges, %s cycles, %s dangling",
            graph.number_of_nodes(),
            graph.number_of_edges(),
            len(cycles),
            len(dangling),
        )
        return CompositionGraph(
            nodes=tuple(sorted(graph.nodes)),
            edges=tuple(sorted(graph.edges)),
            cycles=cycles,
            dangling=tuple(sorted(dangling)),
            metrics=metrics,
        )

    def _cycles(self, graph: nx.DiGraph) -> tuple[tuple[tuple[str, ...], ...], set[str]]:
        """Non-trivial strongly connected components (and self-loops), sorted."""
        cycles: list[tuple[str, ...]] = []
        for component in nx.strongly_connected_components(graph):
            if len(component) > 1:
                cycles.append(tuple(sorted(component)))
            else:
                node = next(iter(component))
                if graph.has_edge(node, node):
                    cycles.append((node,))
        cycles.sort()
        members = {node for cycle in cycles for node in cycle}
        return tuple(cycles), members
