"""Tests for the table dependency graph."""

import pytest

from graphcopy.core.models import ForeignKey
from graphcopy.dependency import TableNodeMap, build_graph
from graphcopy.exceptions import GraphConsistencyError


class TestTableNodeMap:
    """Tests for TableNodeMap."""

    def test_ids_follow_insertion_order(self) -> None:
        """Test node ids are assigned in insertion order."""
        nodes = TableNodeMap(["users", "posts", "comments"])

        assert nodes.node("users") == 0
        assert nodes.node("posts") == 1
        assert nodes.node("comments") == 2

    def test_mapping_is_bijective(self) -> None:
        """Test name -> id -> name round-trips for every table."""
        tables = ["b", "a", "d", "c"]
        nodes = TableNodeMap(tables)

        for table in tables:
            assert nodes.table(nodes.node(table)) == table
        for node in range(len(nodes)):
            assert nodes.node(nodes.table(node)) == node

    def test_add_existing_returns_same_id(self) -> None:
        """Test re-registering a table keeps its id and size."""
        nodes = TableNodeMap(["users"])

        assert nodes.add("users") == 0
        assert len(nodes) == 1

    def test_unknown_lookups_raise(self) -> None:
        """Test unknown names and ids raise KeyError."""
        nodes = TableNodeMap(["users"])

        with pytest.raises(KeyError):
            nodes.node("posts")
        with pytest.raises(KeyError):
            nodes.table(1)
        with pytest.raises(KeyError):
            nodes.table(-1)
        assert nodes.get("posts") is None

    def test_contains_and_iter(self) -> None:
        """Test membership and iteration."""
        nodes = TableNodeMap(["users", "posts"])

        assert "users" in nodes
        assert "comments" not in nodes
        assert list(nodes) == ["users", "posts"]


class TestBuildGraph:
    """Tests for build_graph()."""

    def test_edge_per_foreign_key(self) -> None:
        """Test an FK from B to A yields edge B -> A."""
        graph = build_graph(["A", "B"], [ForeignKey("B", "a_id", "A", "id")])
        a, b = graph.nodes.node("A"), graph.nodes.node("B")

        assert graph.has_edge(b, a)
        assert not graph.has_edge(a, b)
        assert graph.dependencies(b) == {a}
        assert graph.dependents(a) == {b}
        assert graph.edges() == [(b, a)]

    def test_duplicate_foreign_keys_collapse(self) -> None:
        """Test several FK columns to the same table give one edge."""
        fks = [
            ForeignKey("orders", "billing_address_id", "addresses", "id"),
            ForeignKey("orders", "shipping_address_id", "addresses", "id"),
            ForeignKey("orders", "billing_address_id", "addresses", "id"),
        ]
        graph = build_graph(["addresses", "orders"], fks)

        assert graph.edge_count == 1
        assert graph.table_dependencies("orders") == ["addresses"]

    def test_tables_without_foreign_keys_are_nodes(self) -> None:
        """Test every table gets a node even with no FKs."""
        graph = build_graph(["x", "y", "z"], [])

        assert graph.node_count == 3
        assert graph.edge_count == 0

    def test_unknown_target_table_raises(self) -> None:
        """Test an FK to a table outside the set is a consistency error."""
        fk = ForeignKey("orders", "customer_id", "customers", "id")

        with pytest.raises(GraphConsistencyError) as exc_info:
            build_graph(["orders"], [fk])

        assert exc_info.value.foreign_key == fk
        assert exc_info.value.missing == "customers"
        assert exc_info.value.phase == "graph"
        assert "customers" in str(exc_info.value)

    def test_unknown_source_table_raises(self) -> None:
        """Test an FK declared on a table outside the set is a consistency error."""
        fk = ForeignKey("orders", "customer_id", "customers", "id")

        with pytest.raises(GraphConsistencyError) as exc_info:
            build_graph(["customers"], [fk])

        assert exc_info.value.missing == "orders"

    def test_self_reference_is_an_edge_by_default(self) -> None:
        """Test a self-referencing FK adds a self edge."""
        graph = build_graph(["employees"], [ForeignKey("employees", "manager_id", "employees", "id")])
        node = graph.nodes.node("employees")

        assert graph.has_edge(node, node)
        assert graph.self_referencing == frozenset()

    def test_self_reference_ignored_when_requested(self) -> None:
        """Test ignored self-references are recorded without an edge."""
        graph = build_graph(
            ["employees"],
            [ForeignKey("employees", "manager_id", "employees", "id")],
            ignore_self_references=True,
        )

        assert graph.edge_count == 0
        assert graph.self_referencing == frozenset({"employees"})

    def test_table_dependencies_sorted(self) -> None:
        """Test table_dependencies returns names sorted."""
        fks = [
            ForeignKey("orders", "product_id", "products", "id"),
            ForeignKey("orders", "customer_id", "customers", "id"),
        ]
        graph = build_graph(["customers", "orders", "products"], fks)

        assert graph.table_dependencies("orders") == ["customers", "products"]
        assert graph.table_dependencies("customers") == []
