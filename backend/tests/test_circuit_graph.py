"""Unit tests for circuit graph mutations."""

import pytest

from piezosim.catalog.registry import list_specs, spec_for
from piezosim.config import get_settings
from piezosim.errors import DuplicateWire, MissingReference, SelfConnection, UnknownKind
from piezosim.graph.circuit_graph import CircuitGraph, wire_polarity
from piezosim.schemas.catalog import Polarity
from piezosim.schemas.circuit import ConnectionPointRef


# ─── Fixtures ───


def _ref(component_id: str, point_id: str) -> ConnectionPointRef:
    return ConnectionPointRef(component_id=component_id, point_id=point_id)


def _harvester() -> CircuitGraph:
    graph = CircuitGraph()
    graph.add_component("piezo_single", 80, 100)
    graph.add_component("bridge_rectifier", 260, 100)
    graph.add_component("capacitor_1mf", 440, 110)
    return graph


# ═══════════════════════════════════════════════════════════
# Placement
# ═══════════════════════════════════════════════════════════


class TestAddComponent:
    def test_points_follow_snapped_position(self):
        for spec in list_specs():
            graph = CircuitGraph()
            component = graph.add_component(spec.kind, 93, 47)
            assert (component.x, component.y) == (100, 40)
            for point, point_spec in zip(component.connection_points, spec.connection_points):
                assert point.id == point_spec.id
                assert point.x == component.x + point_spec.x
                assert point.y == component.y + point_spec.y

    def test_ids_increase(self):
        graph = _harvester()
        assert [c.id for c in graph.components] == ["comp_1", "comp_2", "comp_3"]

    def test_unknown_kind_leaves_graph_unchanged(self):
        graph = _harvester()
        with pytest.raises(UnknownKind):
            graph.add_component("tesla_coil", 0, 0)
        assert len(graph.components) == 3

    def test_parameters_are_copied(self):
        graph = CircuitGraph()
        piezo = graph.add_component("piezo_single", 0, 0)
        piezo.properties["voltage_peak"] = 99
        assert spec_for("piezo_single").parameters["voltage_peak"] == 15
        again = graph.add_component("piezo_single", 200, 0)
        assert again.properties["voltage_peak"] == 15

    def test_starts_idle(self):
        component = CircuitGraph().add_component("capacitor_1mf", 0, 0)
        assert component.state.voltage == 0
        assert component.state.active is False
        assert component.state.stored_energy == 0


class TestMoveComponent:
    def test_moves_points_and_wire_ends(self):
        graph = _harvester()
        wire = graph.connect(_ref("comp_1", "ac1"), _ref("comp_2", "ac1"))

        graph.move_component("comp_1", 201, 299)

        piezo = graph.get_component("comp_1")
        assert (piezo.x, piezo.y) == (200, 300)
        assert (piezo.point("ac1").x, piezo.point("ac1").y) == (220, 340)
        assert (wire.start.x, wire.start.y) == (220, 340)
        # the other end is untouched
        assert (wire.end.x, wire.end.y) == (270, 150)

    def test_missing_component(self):
        with pytest.raises(MissingReference):
            CircuitGraph().move_component("comp_9", 0, 0)


class TestRemoveComponent:
    def test_cascades_to_wires(self):
        graph = _harvester()
        graph.connect(_ref("comp_1", "ac1"), _ref("comp_2", "ac1"))
        graph.connect(_ref("comp_1", "ac2"), _ref("comp_2", "ac2"))
        graph.connect(_ref("comp_2", "dc_pos"), _ref("comp_3", "positive"))

        graph.remove_component("comp_2")

        assert graph.get_component("comp_2") is None
        assert graph.wires == []

    def test_keeps_unrelated_wires(self):
        graph = _harvester()
        graph.connect(_ref("comp_1", "ac1"), _ref("comp_2", "ac1"))
        keep = graph.connect(_ref("comp_2", "dc_pos"), _ref("comp_3", "positive"))

        graph.remove_component("comp_1")

        assert [w.id for w in graph.wires] == [keep.id]
        assert not any(w.touches("comp_1") for w in graph.wires)

    def test_clears_selection(self):
        graph = _harvester()
        graph.select("comp_3")
        graph.remove_component("comp_3")
        assert graph.selected_id is None

    def test_missing_component(self):
        with pytest.raises(MissingReference):
            _harvester().remove_component("comp_42")


# ═══════════════════════════════════════════════════════════
# Wiring
# ═══════════════════════════════════════════════════════════


class TestConnect:
    def test_creates_wire(self):
        graph = _harvester()
        wire = graph.connect(_ref("comp_1", "ac1"), _ref("comp_2", "ac1"))
        assert wire.id == "wire_1"
        assert wire.start.key() == ("comp_1", "ac1")
        assert wire.end.key() == ("comp_2", "ac1")
        assert (wire.start.x, wire.start.y) == (100, 140)
        assert wire.active is False

    def test_self_connection(self):
        graph = _harvester()
        with pytest.raises(SelfConnection):
            graph.connect(_ref("comp_2", "ac1"), _ref("comp_2", "dc_pos"))
        assert graph.wires == []

    def test_duplicate_same_direction(self):
        graph = _harvester()
        graph.connect(_ref("comp_1", "ac1"), _ref("comp_2", "ac1"))
        with pytest.raises(DuplicateWire):
            graph.connect(_ref("comp_1", "ac1"), _ref("comp_2", "ac1"))
        assert len(graph.wires) == 1

    def test_duplicate_reverse_direction(self):
        graph = _harvester()
        graph.connect(_ref("comp_1", "ac1"), _ref("comp_2", "ac1"))
        with pytest.raises(DuplicateWire):
            graph.connect(_ref("comp_2", "ac1"), _ref("comp_1", "ac1"))

    def test_same_components_other_points_allowed(self):
        graph = _harvester()
        graph.connect(_ref("comp_1", "ac1"), _ref("comp_2", "ac1"))
        graph.connect(_ref("comp_1", "ac1"), _ref("comp_2", "ac2"))
        assert len(graph.wires) == 2

    def test_missing_point(self):
        graph = _harvester()
        with pytest.raises(MissingReference):
            graph.connect(_ref("comp_1", "dc_pos"), _ref("comp_2", "ac1"))

    def test_missing_component(self):
        graph = _harvester()
        with pytest.raises(MissingReference):
            graph.connect(_ref("comp_7", "ac1"), _ref("comp_2", "ac1"))

    def test_polarity_classes(self):
        graph = _harvester()
        ac = graph.connect(_ref("comp_1", "ac1"), _ref("comp_2", "ac1"))
        pos = graph.connect(_ref("comp_2", "dc_pos"), _ref("comp_3", "positive"))
        neg = graph.connect(_ref("comp_2", "dc_neg"), _ref("comp_3", "negative"))
        assert ac.polarity == Polarity.AC
        assert pos.polarity == Polarity.POSITIVE
        assert neg.polarity == Polarity.NEGATIVE


class TestWirePolarity:
    def test_ac_wins(self):
        assert wire_polarity(Polarity.AC, Polarity.NEGATIVE) == Polarity.AC
        assert wire_polarity(Polarity.POSITIVE, Polarity.AC) == Polarity.AC

    def test_negative_beats_positive(self):
        assert wire_polarity(Polarity.POSITIVE, Polarity.NEGATIVE) == Polarity.NEGATIVE

    def test_positive(self):
        assert wire_polarity(Polarity.POSITIVE, Polarity.POSITIVE) == Polarity.POSITIVE


class TestDisconnectAndClear:
    def test_disconnect_is_idempotent(self):
        graph = _harvester()
        wire = graph.connect(_ref("comp_1", "ac1"), _ref("comp_2", "ac1"))
        assert graph.disconnect(wire.id) is not None
        assert graph.disconnect(wire.id) is None
        assert graph.wires == []

    def test_clear_does_not_reuse_ids(self):
        graph = _harvester()
        graph.connect(_ref("comp_1", "ac1"), _ref("comp_2", "ac1"))
        graph.select("comp_1")

        graph.clear()

        assert graph.components == []
        assert graph.wires == []
        assert graph.selected_id is None
        assert graph.add_component("diode", 0, 0).id == "comp_4"


class TestGraphSettings:
    def test_defaults_come_from_settings(self):
        graph = CircuitGraph()
        settings = get_settings()
        assert graph.grid_unit == settings.grid_unit
        assert graph.point_hit_radius == settings.point_hit_radius
        assert graph.wire_hit_tolerance == settings.wire_hit_tolerance

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("PIEZOSIM_GRID_UNIT", "40")
        get_settings.cache_clear()
        try:
            component = CircuitGraph().add_component("diode", 93, 47)
        finally:
            get_settings.cache_clear()
        assert (component.x, component.y) == (80, 40)

    def test_explicit_values_win(self):
        graph = CircuitGraph(grid_unit=50, point_hit_radius=1)
        component = graph.add_component("diode", 93, 47)
        assert (component.x, component.y) == (100, 50)
        assert graph.connection_point_at(112, 77) is None
        assert graph.connection_point_at(110, 75).point_id == "anode"
