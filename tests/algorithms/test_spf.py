# pylint: disable=protected-access,invalid-name
import pytest

from flowassign.algorithms.base import SpfMethod
from flowassign.algorithms.builder import SINK, SOURCE, build_network
from flowassign.algorithms.spf import (
    InvalidPotentials,
    ShortestPathOracle,
    resolve_path,
    shortest_path,
    spf_dijkstra_reduced,
    spf_label_correcting,
)
from flowassign.exceptions import NegativeCycleError
from flowassign.graph import FlowNetwork, ResidualArc


def relax_to_lower(graph, index):
    for arc_id, bounds in zip(index.sink_arcs, index.bounds):
        graph.set_effective_bounds(arc_id, 0, bounds.lower)


def augment(graph, path):
    for res in path.arcs:
        graph.push(res, path.bottleneck)


@pytest.fixture
def negative_cycle():
    # 0 -> 1 -> 2 -> 3 with a 1 <-> 2 loop of total cost -4
    g = FlowNetwork()
    for node in range(4):
        g.add_node(node)
    g.add_arc(0, 1, cost=0)
    g.add_arc(1, 2, cost=-5)
    g.add_arc(2, 1, cost=1)
    g.add_arc(2, 3, cost=0)
    return g


class TestLabelCorrecting:
    def test_cheapest_task(self):
        graph, _ = build_network([(0, 1), (0, 1)], [[3, 1]])
        path = shortest_path(graph, SOURCE, SINK)

        # source -> worker 0 (node 4) -> task 1 (node 3) -> sink
        assert path.nodes == (0, 4, 3, 1)
        assert path.cost == pytest.approx(1)
        assert path.bottleneck == 1
        assert len(path) == 3
        assert all(res.forward for res in path.arcs)

    def test_ties_prefer_first_inserted_arc(self):
        graph, _ = build_network([(0, 1), (0, 1)], [[1, 1]])
        path = shortest_path(graph, SOURCE, SINK)
        assert path.nodes == (0, 4, 2, 1)

    def test_costs_and_predecessors(self):
        graph, index = build_network([(0, 1), (0, 1)], [[3, 1], [2, 4]])
        costs, pred = spf_label_correcting(graph, SOURCE, SINK)

        assert costs[SOURCE] == 0
        assert SOURCE not in pred
        assert costs[index.tasks[0]] == pytest.approx(2)
        assert costs[index.tasks[1]] == pytest.approx(1)
        assert costs[SINK] == pytest.approx(1)
        assert pred[SINK] == ResidualArc(index.sink_arcs[1], True)

    def test_unreachable_sink(self):
        graph, _ = build_network([(0, 1)], [[None], [None]])
        assert shortest_path(graph, SOURCE, SINK) is None

    def test_unknown_source(self):
        graph, _ = build_network([(0, 1)], [[1]])
        with pytest.raises(KeyError):
            spf_label_correcting(graph, 99)

    def test_path_through_backward_arc(self):
        graph, index = build_network([(1, 2), (1, 1)], [[1, 2], [2, None]])
        relax_to_lower(graph, index)

        first = shortest_path(graph, SOURCE, SINK)
        assert first.cost == pytest.approx(1)
        augment(graph, first)

        # worker 1 takes task 0 and worker 0 moves over to task 1
        second = shortest_path(graph, SOURCE, SINK)
        w0, w1 = index.workers
        t0, t1 = index.tasks
        assert second.nodes == (SOURCE, w1, t0, w0, t1, SINK)
        assert second.cost == pytest.approx(2 - 1 + 2)
        assert ResidualArc(index.cost_arcs[(0, 0)], False) in second.arcs

    def test_negative_cycle_detected(self, negative_cycle):
        with pytest.raises(NegativeCycleError):
            spf_label_correcting(negative_cycle, 0, 3)

    def test_negative_arc_without_cycle(self):
        graph, _ = build_network([(0, 2)], [[-1], [-2]])
        path = shortest_path(graph, SOURCE, SINK)
        assert path.cost == pytest.approx(-2)
        assert path.nodes[1] == 4  # worker 1


class TestResolvePath:
    def test_missing_destination(self):
        graph, _ = build_network([(0, 1)], [[1]])
        assert resolve_path(graph, SOURCE, SINK, {SOURCE: 0.0}, {}) is None

    def test_looping_predecessors(self, negative_cycle):
        pred = {
            1: ResidualArc(2, True),  # 2 -> 1
            2: ResidualArc(1, True),  # 1 -> 2
            3: ResidualArc(3, True),  # 2 -> 3
        }
        with pytest.raises(NegativeCycleError):
            resolve_path(negative_cycle, 0, 3, {3: -9.0}, pred)


class TestDijkstraReduced:
    def test_zero_potentials_match_label_correcting(self):
        graph, _ = build_network([(0, 2), (0, 2)], [[3, 1], [2, 4]])
        potentials = {node: 0.0 for node in graph}

        lc_costs, _ = spf_label_correcting(graph, SOURCE, SINK)
        dj_costs, dj_pred = spf_dijkstra_reduced(graph, SOURCE, potentials, SINK)

        assert dj_costs[SINK] == pytest.approx(lc_costs[SINK])
        path = resolve_path(graph, SOURCE, SINK, dj_costs, dj_pred)
        assert path.cost == pytest.approx(1)

    def test_potentials_from_previous_round(self):
        graph, index = build_network([(0, 2), (0, 2)], [[3, 1], [2, 4]])
        costs, pred = spf_label_correcting(graph, SOURCE, SINK)
        augment(graph, resolve_path(graph, SOURCE, SINK, costs, pred))

        lc_costs, _ = spf_label_correcting(graph, SOURCE, SINK)
        dj_costs, _ = spf_dijkstra_reduced(graph, SOURCE, costs, SINK)
        assert dj_costs[SINK] == pytest.approx(lc_costs[SINK]) == pytest.approx(2)

    def test_negative_reduced_cost_rejected(self):
        graph, _ = build_network([(0, 1)], [[-1]])
        with pytest.raises(InvalidPotentials, match="Negative reduced cost"):
            spf_dijkstra_reduced(graph, SOURCE, {node: 0.0 for node in graph}, SINK)

    def test_missing_potential_rejected(self):
        graph, _ = build_network([(0, 1)], [[1]])
        with pytest.raises(InvalidPotentials, match="No potential"):
            spf_dijkstra_reduced(graph, SOURCE, {SOURCE: 0.0}, SINK)
        with pytest.raises(InvalidPotentials):
            spf_dijkstra_reduced(graph, SOURCE, {}, SINK)


class TestOracle:
    def test_label_correcting_keeps_no_potentials(self):
        graph, _ = build_network([(0, 1)], [[1]])
        oracle = ShortestPathOracle()
        assert oracle.find(graph, SOURCE, SINK).cost == pytest.approx(1)
        assert oracle.potentials is None
        assert oracle.calls == 1

    def test_dijkstra_stores_potentials(self):
        graph, _ = build_network([(0, 1)], [[1]])
        oracle = ShortestPathOracle(SpfMethod.DIJKSTRA_POTENTIALS)
        oracle.find(graph, SOURCE, SINK)
        assert oracle.potentials[SINK] == pytest.approx(1)

        oracle.invalidate()
        assert oracle.potentials is None

    def test_fallback_on_invalid_potentials(self):
        graph, _ = build_network([(0, 1)], [[-1]])
        oracle = ShortestPathOracle(SpfMethod.DIJKSTRA_POTENTIALS)
        oracle.potentials = {node: 0.0 for node in graph}

        path = oracle.find(graph, SOURCE, SINK)
        assert path.cost == pytest.approx(-1)
        assert oracle.fallbacks == 1
        assert oracle.potentials[SINK] == pytest.approx(-1)

    def test_method_coerced_from_int(self):
        assert ShortestPathOracle(2).method is SpfMethod.DIJKSTRA_POTENTIALS
