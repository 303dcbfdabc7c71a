"""
Unit tests for the workspace-wide reference sync.
"""

import asyncio
import logging

import pytest
from conftest import make_graph, manifest, references_of

from refsync.config import SyncOptions
from refsync.core.tree import MemoryTree
from refsync.sync.generator import (
    OUT_OF_SYNC_MESSAGE,
    SyncConfigurationError,
    sync_project_graph,
    sync_references,
)

OPTIONS = SyncOptions(format="json")


def run_sync(tree, graph, options=OPTIONS):
    return asyncio.run(sync_references(tree, graph=graph, options=options))


@pytest.fixture
def api_util_graph():
    return make_graph(
        {"workspace": ".", "api": "packages/api", "util": "packages/util"},
        {"api": ["util"], "util": []},
    )


@pytest.fixture
def api_util_tree(workspace_files):
    workspace_files.update(
        {
            "tsconfig.json": manifest("./packages/api", "./packages/util"),
            "packages/api/tsconfig.json": manifest("./tsconfig.base.json", "../old-lib"),
            "packages/api/tsconfig.base.json": manifest(),
            "packages/util/tsconfig.json": manifest(),
        }
    )
    return MemoryTree(workspace_files)


class TestPreconditions:

    def test_plugin_must_be_registered(self, api_util_graph):
        tree = MemoryTree({"tsconfig.json": manifest(), "refsync.yaml": "plugins: []\n"})

        with pytest.raises(SyncConfigurationError, match="plugin must be added"):
            run_sync(tree, api_util_graph)

    def test_missing_workspace_config_is_not_registered(self, api_util_graph):
        tree = MemoryTree({"tsconfig.json": manifest()})

        with pytest.raises(SyncConfigurationError, match="refsync/typescript"):
            run_sync(tree, api_util_graph)

    def test_expanded_plugin_entry_is_accepted(self, api_util_graph):
        tree = MemoryTree(
            {
                "tsconfig.json": manifest(),
                "refsync.yaml": "plugins:\n  - plugin: refsync/typescript\n    options: {}\n",
            }
        )

        # only the root manifest exists: nothing to reference
        assert run_sync(tree, api_util_graph) is None

    def test_root_manifest_must_exist(self, api_util_graph, workspace_files):
        del workspace_files["tsconfig.json"]
        tree = MemoryTree(workspace_files)

        with pytest.raises(SyncConfigurationError, match="must exist in the workspace root"):
            run_sync(tree, api_util_graph)

    def test_in_memory_tree_requires_graph(self, workspace_files):
        tree = MemoryTree(workspace_files)

        with pytest.raises(SyncConfigurationError, match="project graph is required"):
            asyncio.run(sync_references(tree, options=OPTIONS))


class TestSyncReferences:

    def test_out_of_sync_workspace_is_fixed(self, api_util_tree, api_util_graph):
        result = run_sync(api_util_tree, api_util_graph)

        assert result is not None
        assert result.out_of_sync_message == OUT_OF_SYNC_MESSAGE
        assert result.changed_files == ["packages/api/tsconfig.json"]
        assert references_of(api_util_tree, "packages/api/tsconfig.json") == [
            "../util",
            "./tsconfig.base.json",
        ]

    def test_rerun_is_a_no_op(self, api_util_tree, api_util_graph):
        run_sync(api_util_tree, api_util_graph)
        api_util_tree.commit()
        before = api_util_tree.read("packages/api/tsconfig.json")

        assert run_sync(api_util_tree, api_util_graph) is None
        assert api_util_tree.list_changes() == []
        assert api_util_tree.read("packages/api/tsconfig.json") == before

    def test_transitive_disabled_references_direct_dependencies_only(self, workspace_files):
        workspace_files.update(
            {
                "packages/api/tsconfig.json": manifest(),
                "packages/mid/tsconfig.json": manifest(),
                "packages/util/tsconfig.json": manifest(),
            }
        )
        tree = MemoryTree(workspace_files)
        graph = make_graph(
            {"api": "packages/api", "mid": "packages/mid", "util": "packages/util"},
            {"api": ["mid"], "mid": ["util"]},
        )

        run_sync(tree, graph, SyncOptions(include_transitive=False, format="json"))

        assert references_of(tree, "packages/api/tsconfig.json") == ["../mid"]
        assert references_of(tree, "packages/mid/tsconfig.json") == ["../util"]

    def test_transitive_dependencies_are_referenced(self, workspace_files):
        workspace_files.update(
            {
                "packages/api/tsconfig.json": manifest(),
                "packages/mid/tsconfig.json": manifest(),
                "packages/util/tsconfig.json": manifest(),
            }
        )
        tree = MemoryTree(workspace_files)
        graph = make_graph(
            {"api": "packages/api", "mid": "packages/mid", "util": "packages/util"},
            {"api": ["mid"], "mid": ["util"]},
        )

        run_sync(tree, graph)

        assert references_of(tree, "packages/api/tsconfig.json") == ["../util", "../mid"]

    def test_root_manifest_lists_projects_with_manifests(self, workspace_files):
        workspace_files.update(
            {
                "packages/api/tsconfig.json": manifest(),
                "packages/docs/README.md": "docs",
            }
        )
        tree = MemoryTree(workspace_files)
        graph = make_graph(
            {"workspace": ".", "api": "packages/api", "docs": "packages/docs"},
        )

        result = run_sync(tree, graph)

        assert result.changed_files == ["tsconfig.json"]
        assert references_of(tree, "tsconfig.json") == ["./packages/api"]

    def test_dependencies_without_manifest_are_skipped(self, workspace_files, caplog):
        workspace_files.update(
            {
                "packages/api/tsconfig.json": manifest(),
                "packages/assets/package.json": "{}",
            }
        )
        tree = MemoryTree(workspace_files)
        graph = make_graph(
            {"api": "packages/api", "assets": "packages/assets"},
            {"api": ["assets"]},
        )

        with caplog.at_level(logging.WARNING, logger="refsync.sync.generator"):
            run_sync(tree, graph, SyncOptions(verbose=True, format="json"))

        assert references_of(tree, "packages/api/tsconfig.json") == []
        assert 'Skipping dependency "assets"' in caplog.text
        assert 'Skipping project "assets"' in caplog.text

    def test_skips_are_silent_without_verbose(self, workspace_files, caplog):
        workspace_files["packages/api/tsconfig.json"] = manifest()
        tree = MemoryTree(workspace_files)
        graph = make_graph(
            {"api": "packages/api", "assets": "packages/assets"},
            {"api": ["assets"]},
        )

        with caplog.at_level(logging.WARNING, logger="refsync.sync.generator"):
            run_sync(tree, graph)

        assert "Skipping" not in caplog.text

    def test_runtime_manifests_are_synced(self, workspace_files):
        workspace_files.update(
            {
                "packages/api/tsconfig.json": manifest("./tsconfig.lib.json"),
                "packages/api/tsconfig.lib.json": manifest(),
                "packages/util/tsconfig.json": manifest("./tsconfig.lib.json"),
                "packages/util/tsconfig.lib.json": manifest(),
            }
        )
        tree = MemoryTree(workspace_files)
        graph = make_graph(
            {"api": "packages/api", "util": "packages/util"},
            {"api": ["util"]},
        )

        run_sync(tree, graph)

        assert references_of(tree, "packages/api/tsconfig.lib.json") == ["../util/tsconfig.lib.json"]
        assert references_of(tree, "packages/api/tsconfig.json") == ["../util", "./tsconfig.lib.json"]

    def test_custom_runtime_manifest_names(self, workspace_files):
        workspace_files.update(
            {
                "packages/api/tsconfig.json": manifest(),
                "packages/api/tsconfig.node.json": manifest(),
                "packages/util/tsconfig.json": manifest(),
                "packages/util/tsconfig.node.json": manifest(),
            }
        )
        tree = MemoryTree(workspace_files)
        graph = make_graph({"api": "packages/api", "util": "packages/util"}, {"api": ["util"]})

        run_sync(tree, graph, SyncOptions(runtime_manifest_names=["tsconfig.node.json"], format="json"))

        assert references_of(tree, "packages/api/tsconfig.node.json") == ["../util/tsconfig.node.json"]

    def test_dependency_cycle_is_reported_not_fatal(self, workspace_files, caplog):
        workspace_files.update(
            {
                "packages/a/tsconfig.json": manifest(),
                "packages/b/tsconfig.json": manifest(),
            }
        )
        tree = MemoryTree(workspace_files)
        graph = make_graph({"a": "packages/a", "b": "packages/b"}, {"a": ["b"], "b": ["a"]})

        with caplog.at_level(logging.WARNING, logger="refsync.sync.generator"):
            result = run_sync(tree, graph)

        assert "Dependency cycle detected" in caplog.text
        assert len(result.cycles) == 1
        assert references_of(tree, "packages/a/tsconfig.json") == ["../b"]
        assert references_of(tree, "packages/b/tsconfig.json") == ["../a"]

    def test_removing_last_dependency_clears_stale_reference(self, api_util_tree, api_util_graph):
        run_sync(api_util_tree, api_util_graph)
        api_util_tree.commit()
        api_util_graph.dependencies["api"] = []

        result = run_sync(api_util_tree, api_util_graph)

        assert result is not None
        assert references_of(api_util_tree, "packages/api/tsconfig.json") == ["./tsconfig.base.json"]

    def test_commented_manifest_is_reconciled(self, workspace_files):
        workspace_files.update(
            {
                "packages/api/tsconfig.json": (
                    "{ // composite build\n"
                    '  "compilerOptions": { "composite": true },\n'
                    "}\n"
                ),
                "packages/util/tsconfig.json": manifest(),
            }
        )
        tree = MemoryTree(workspace_files)
        graph = make_graph({"api": "packages/api", "util": "packages/util"}, {"api": ["util"]})

        result = run_sync(tree, graph)

        assert "packages/api/tsconfig.json" in result.changed_files
        assert references_of(tree, "packages/api/tsconfig.json") == ["../util"]
        assert '"composite": true' in tree.read("packages/api/tsconfig.json")

    def test_project_roots_with_trailing_slash(self, workspace_files):
        workspace_files.update(
            {
                "packages/api/tsconfig.json": manifest("./src"),
                "packages/api/src/tsconfig.json": manifest(),
                "packages/util/tsconfig.json": manifest(),
            }
        )
        tree = MemoryTree(workspace_files)
        graph = make_graph({"api": "./packages/api/", "util": "packages/util/"}, {"api": ["util"]})

        run_sync(tree, graph)

        assert references_of(tree, "packages/api/tsconfig.json") == ["../util", "./src"]
        assert references_of(tree, "tsconfig.json") == ["./packages/api", "./packages/util"]


class TestSyncOptionsResolution:

    def test_options_are_read_from_workspace_config(self, monkeypatch):
        monkeypatch.delenv("REFSYNC_DISABLE_TRANSITIVE_DEPENDENCIES", raising=False)
        tree = MemoryTree(
            {
                "tsconfig.json": manifest(),
                "refsync.yaml": (
                    "plugins: [refsync/typescript]\n"
                    "sync:\n  transitive_dependencies: false\n  format: json\n"
                ),
                "packages/api/tsconfig.json": manifest(),
                "packages/mid/tsconfig.json": manifest(),
                "packages/util/tsconfig.json": manifest(),
            }
        )
        graph = make_graph(
            {"api": "packages/api", "mid": "packages/mid", "util": "packages/util"},
            {"api": ["mid"], "mid": ["util"]},
        )

        asyncio.run(sync_references(tree, graph=graph))

        assert references_of(tree, "packages/api/tsconfig.json") == ["../mid"]


def test_sync_project_graph_without_projects(workspace_files):
    tree = MemoryTree(workspace_files)

    assert sync_project_graph(tree, make_graph({}), OPTIONS) is None
