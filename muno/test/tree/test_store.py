"""Tests for muno.tree.store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from muno.core.result import Err, Ok
from muno.tree.errors import NodeConflict, NotInitialized, PathNotFound
from muno.tree.models import NodeDefinition, NodeInfo, NodeKind, TreeState, WorkspaceTree
from muno.tree.store import TreeStore, node_from_definition


def _tree() -> WorkspaceTree:
    return WorkspaceTree(
        "ws",
        repos_dir="repos",
        nodes=(
            NodeDefinition("backend", url="https://x/backend.git"),
            NodeDefinition("frontend", url="https://x/frontend.git", fetch="lazy"),
            NodeDefinition("team", file="teams/team.yaml"),
        ),
    )


@pytest.fixture
def store(tmp_path: Path) -> TreeStore:
    store = TreeStore(state_path=tmp_path / ".muno" / "state.json")
    store.load(_tree(), tmp_path / "muno.yaml")
    return store


class TestNotInitialized:
    """Every operation fails before load()."""

    def test_reads_and_writes(self) -> None:
        store = TreeStore()
        assert store.is_loaded is False
        assert isinstance(store.get_node("/"), Err)
        assert isinstance(store.list_children("/"), Err)
        assert isinstance(store.get_tree(), Err)
        assert isinstance(store.navigate("/"), Err)
        assert isinstance(store.get_current(), Err)
        assert isinstance(store.update_node("/", is_cloned=True), Err)
        result = store.add_node("/", NodeInfo(name="a", path="", kind=NodeKind.GROUP))
        assert result == Err(NotInitialized())


class TestLoad:
    def test_root_and_children(self, store: TreeStore, tmp_path: Path) -> None:
        root = store.get_node("/")
        assert isinstance(root, Ok)
        assert root.value.kind is NodeKind.GROUP
        assert root.value.children == ["backend", "frontend", "team"]
        assert root.value.config_file == tmp_path / "muno.yaml"
        assert root.value.children_loaded is True

    def test_child_records(self, store: TreeStore, tmp_path: Path) -> None:
        frontend = store.get_node("/frontend").unwrap()
        assert frontend.repository == "https://x/frontend.git"
        assert frontend.is_lazy is True
        assert frontend.is_cloned is False
        assert frontend.declared_in == tmp_path / "muno.yaml"

        team = store.get_node("/team").unwrap()
        assert team.kind is NodeKind.CONFIG_REF
        assert team.config_file == tmp_path / "teams" / "team.yaml"
        assert team.children_loaded is False

    def test_config_document_is_kept(self, store: TreeStore, tmp_path: Path) -> None:
        assert store.config_document(tmp_path / "muno.yaml") == _tree()

    def test_exact_lookups_only(self, store: TreeStore) -> None:
        result = store.get_node("/back")
        assert result == Err(PathNotFound("/back", "back", "/"))

    def test_load_children_splices_and_adopts_repos_dir(self, store: TreeStore, tmp_path: Path) -> None:
        team_config = tmp_path / "teams" / "team.yaml"
        sub = WorkspaceTree("team", repos_dir="custom", nodes=(NodeDefinition("svc", url="u"),))

        result = store.load_children("/team", sub, team_config)

        assert isinstance(result, Ok)
        assert result.value.children == ["svc"]
        assert result.value.repos_dir == "custom"
        svc = store.get_node("/team/svc").unwrap()
        assert svc.declared_in == team_config
        assert svc.repos_dir == "custom"


class TestReadsAreCopies:
    def test_mutating_a_snapshot_does_not_change_the_store(self, store: TreeStore) -> None:
        snapshot = store.get_node("/").unwrap()
        snapshot.children.clear()
        snapshot.is_cloned = False
        root = store.get_node("/").unwrap()
        assert root.children == ["backend", "frontend", "team"]
        assert root.is_cloned is True

    def test_tree_view(self, store: TreeStore) -> None:
        view = store.get_tree().unwrap()
        assert [v.node.path for v in view.walk()] == ["/", "/backend", "/frontend", "/team"]

    def test_list_children(self, store: TreeStore) -> None:
        children = store.list_children("/").unwrap()
        assert [c.name for c in children] == ["backend", "frontend", "team"]


class TestMutations:
    def test_update_node(self, store: TreeStore) -> None:
        result = store.update_node("/frontend", is_cloned=True, has_changes=True)
        assert isinstance(result, Ok)
        node = store.get_node("/frontend").unwrap()
        assert node.is_cloned is True
        assert node.has_changes is True
        assert node.is_lazy is True

    def test_update_rejects_structural_fields(self, store: TreeStore) -> None:
        result = store.update_node("/frontend", name="renamed")
        assert isinstance(result, Err)
        assert isinstance(result.error, NodeConflict)

    def test_update_rejects_unknown_fields(self, store: TreeStore) -> None:
        result = store.update_node("/frontend", colour="blue")
        assert isinstance(result, Err)
        assert "unknown node field" in result.error.reason  # type: ignore[union-attr]

    def test_add_node(self, store: TreeStore, tmp_path: Path) -> None:
        record = node_from_definition(
            NodeDefinition("tools", url="https://x/tools.git"),
            parent="/",
            declared_in=tmp_path / "muno.yaml",
            repos_dir="repos",
        )
        added = store.add_node("/", record)

        assert isinstance(added, Ok)
        assert added.value.path == "/tools"
        assert store.get_node("/").unwrap().children[-1] == "tools"

    def test_add_conflict(self, store: TreeStore) -> None:
        result = store.add_node("/", NodeInfo(name="backend", path="", kind=NodeKind.REPO))
        assert isinstance(result, Err)
        assert isinstance(result.error, NodeConflict)

    def test_remove_subtree(self, store: TreeStore, tmp_path: Path) -> None:
        store.load_children(
            "/team",
            WorkspaceTree("team", nodes=(NodeDefinition("svc", url="u"),)),
            tmp_path / "teams" / "team.yaml",
        )

        removed = store.remove_node("/team")

        assert isinstance(removed, Ok)
        assert isinstance(store.get_node("/team/svc"), Err)
        assert store.get_node("/").unwrap().children == ["backend", "frontend"]

    def test_remove_root_refused(self, store: TreeStore) -> None:
        assert isinstance(store.remove_node("/"), Err)

    def test_remove_current_node_moves_position_up(self, store: TreeStore) -> None:
        store.navigate("/backend")
        store.remove_node("/backend")
        assert store.get_path() == "/"

    def test_remove_previous_node_moves_previous_up(self, store: TreeStore, tmp_path: Path) -> None:
        store.load_children(
            "/team",
            WorkspaceTree("team", nodes=(NodeDefinition("svc", url="u"),)),
            tmp_path / "teams" / "team.yaml",
        )
        store.navigate("/team/svc")
        store.navigate("/backend")

        store.remove_node("/team")

        assert store.get_state() == TreeState(current_path="/backend", previous_path="/")


class TestNavigation:
    def test_navigate_records_previous(self, store: TreeStore) -> None:
        store.navigate("/backend")
        store.navigate("/team")
        assert store.get_state() == TreeState(current_path="/team", previous_path="/backend")

    def test_navigate_to_same_path_keeps_previous(self, store: TreeStore) -> None:
        store.navigate("/backend")
        store.navigate("/backend")
        assert store.get_state().previous_path == "/"

    def test_navigate_unknown(self, store: TreeStore) -> None:
        assert isinstance(store.navigate("/nope"), Err)
        assert store.get_path() == "/"

    def test_get_current_falls_back_to_root(self, store: TreeStore) -> None:
        store.set_path("/gone")
        assert store.get_current().unwrap().path == "/"

    def test_set_path_and_state(self, store: TreeStore) -> None:
        store.set_path("/frontend")
        assert store.get_path() == "/frontend"
        store.set_state(TreeState())
        assert store.get_path() == "/"


class TestPersistence:
    def test_save_and_load_state(self, store: TreeStore, tmp_path: Path) -> None:
        store.navigate("/backend")
        assert store.save_state() == Ok(None)

        data = json.loads((tmp_path / ".muno" / "state.json").read_text(encoding="utf-8"))
        assert data == {"current_path": "/backend", "previous_path": "/"}

        fresh = TreeStore(state_path=tmp_path / ".muno" / "state.json")
        assert fresh.load_state() == TreeState("/backend", "/")

    def test_corrupt_state_resets(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")
        assert TreeStore(state_path=path).load_state() == TreeState()

    def test_unknown_keys_reset(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text('{"cwd": "/x"}', encoding="utf-8")
        assert TreeStore(state_path=path).load_state() == TreeState()

    def test_in_memory_store(self) -> None:
        store = TreeStore()
        assert store.save_state() == Ok(None)
        assert store.load_state() == TreeState()
