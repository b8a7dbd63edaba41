"""
Tests for the ensgraph command line.
"""

import json

import pytest

from ensgraph import __version__, app
from ensgraph.database import RemoteEdgeStore
from ensgraph.engine import ProfileResolutionEngine
from ensgraph.logger import configure_logging, get_logger
from ensgraph.storage import EdgeStore

from conftest import VITALIK_ADDRESS, StubProvider, StubResolver

ENV_KEYS = (
    "ENSGRAPH_DATABASE_URL",
    "ENSGRAPH_EDGES_PATH",
    "ENSGRAPH_RPC_URL",
    "ENSGRAPH_LOG_LEVEL",
    "ENSGRAPH_LOG_DIR",
)


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every command from an empty directory with no ENSGRAPH_* overrides."""
    monkeypatch.chdir(tmp_path)
    for key in ENV_KEYS:
        # setenv first so teardown also undoes values written by load_dotenv
        monkeypatch.setenv(key, "unset")
        monkeypatch.delenv(key)
    yield
    configure_logging("INFO")


@pytest.fixture
def use_provider(monkeypatch):
    def install(provider):
        monkeypatch.setattr(
            app,
            "ProfileResolutionEngine",
            lambda settings: ProfileResolutionEngine(provider=provider, settings=settings),
        )
    return install


class TestProfileCommand:
    def test_prints_profile(self, use_provider, full_provider, capsys):
        use_provider(full_provider)

        app.main(["profile", "vitalik.eth"])

        out = capsys.readouterr().out
        assert "ENS Name: vitalik.eth" in out
        assert f"Resolved Address: {VITALIK_ADDRESS}" in out
        assert "Name: Vitalik" in out
        assert "Url: https://vitalik.ca" in out
        assert f"ETH: {VITALIK_ADDRESS}" in out
        assert "Content Hash: ipfs://QmTest" in out
        assert "Expiry Date: 2030-" in out

    def test_json_output(self, use_provider, full_provider, capsys):
        use_provider(full_provider)

        app.main(["profile", "vitalik.eth", "--json"])

        data = json.loads(capsys.readouterr().out)
        assert data["outcome"] == "profile"
        assert data["text_records"] == {"name": "Vitalik", "url": "https://vitalik.ca"}
        assert data["coin_addresses"] == {"ETH": VITALIK_ADDRESS}

    def test_resolver_without_records(self, use_provider, capsys):
        """A resolver with nothing set prints no empty profile sections."""
        use_provider(StubProvider(resolver=StubResolver()))

        app.main(["profile", "empty.eth"])

        out = capsys.readouterr().out
        assert "Basic Information" not in out
        assert "empty.eth has a resolver but no owner, address or text records set." in out

    def test_not_found(self, use_provider, capsys):
        use_provider(StubProvider(resolver=None))

        with pytest.raises(SystemExit) as exc:
            app.main(["profile", "nobody.eth"])

        assert exc.value.code == 1
        assert "No Record Found" in capsys.readouterr().out

    def test_fatal_error(self, use_provider):
        use_provider(StubProvider(resolver=RuntimeError("RPC request timed out. Try again later.")))

        with pytest.raises(SystemExit) as exc:
            app.main(["profile", "vitalik.eth"])

        assert exc.value.code == "Error: RPC request timed out. Try again later."

    def test_invalid_configuration(self, monkeypatch):
        monkeypatch.setenv("ENSGRAPH_MAX_WORKERS", "lots")
        with pytest.raises(SystemExit) as exc:
            app.main(["profile", "vitalik.eth"])
        assert "Invalid configuration" in exc.value.code


class TestValidateCommand:
    def test_valid(self, pairs_file, capsys):
        app.main(["validate", "--input", str(pairs_file)])
        assert capsys.readouterr().out.strip() == "Valid: 3 pairs"

    def test_invalid(self, tmp_path, capsys):
        path = tmp_path / "bad.txt"
        path.write_text("a.eth, a.eth\nb.eth\n")

        with pytest.raises(SystemExit) as exc:
            app.main(["validate", "--input", str(path)])

        assert exc.value.code == 2
        out = capsys.readouterr().out
        assert 'Line 1: Cannot connect "a.eth" to itself' in out
        assert "Line 2: Invalid format" in out

    def test_missing_file(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            app.main(["validate", "--input", str(tmp_path / "nope.txt")])
        assert "Input file not found" in exc.value.code


class TestGraphCommand:
    def test_summary_marks_custom_edges(self, pairs_file, populated_edges_path, capsys):
        app.main(["graph", "--input", str(pairs_file), "--store", str(populated_edges_path)])

        out = capsys.readouterr().out
        assert "5 total connections (3 from input, 2 custom)" in out
        assert " * alice.eth <-> bob.eth" in out
        assert "   vitalik.eth <-> balajis.eth" in out

    def test_json(self, pairs_file, edges_path, capsys):
        app.main(["graph", "--input", str(pairs_file), "--store", str(edges_path), "--json"])

        data = json.loads(capsys.readouterr().out)
        assert len(data["links"]) == 3
        assert {"id": "santi.eth", "name": "santi.eth"} in data["nodes"]

    def test_empty_graph(self, tmp_path, edges_path, capsys):
        path = tmp_path / "empty.txt"
        path.write_text("")
        app.main(["graph", "--input", str(path), "--store", str(edges_path)])
        assert "No graph data." in capsys.readouterr().out


class TestEdgesCommand:
    def test_add_and_list(self, edges_path, capsys):
        app.main(["edges", "add", "bob.eth", "alice.eth", "--store", str(edges_path)])
        app.main(["edges", "list", "--store", str(edges_path)])

        out = capsys.readouterr().out
        assert "Added: alice.eth <-> bob.eth" in out
        assert "Found 1 custom edge in" in out
        assert EdgeStore(edges_path).contains(("alice.eth", "bob.eth"))

    def test_add_duplicate(self, populated_edges_path):
        with pytest.raises(SystemExit) as exc:
            app.main(["edges", "add", "bob.eth", "alice.eth", "--store", str(populated_edges_path)])
        assert "already exists" in exc.value.code

    def test_add_self_loop(self, edges_path):
        with pytest.raises(SystemExit) as exc:
            app.main(["edges", "add", "a.eth", "A.eth", "--store", str(edges_path)])
        assert exc.value.code.startswith("Invalid edge")

    def test_add_existing_text_edge(self, pairs_file, edges_path):
        with pytest.raises(SystemExit) as exc:
            app.main([
                "edges", "add", "santi.eth", "vitalik.eth",
                "--input", str(pairs_file), "--store", str(edges_path),
            ])
        assert "already exists" in exc.value.code

    def test_remove(self, populated_edges_path, capsys):
        app.main(["edges", "remove", "bob.eth", "alice.eth", "--store", str(populated_edges_path)])
        app.main(["edges", "remove", "bob.eth", "alice.eth", "--store", str(populated_edges_path)])

        out = capsys.readouterr().out
        assert out.splitlines() == ["Removed.", "Edge not found."]

    def test_remove_text_edge_refused(self, pairs_file, edges_path):
        with pytest.raises(SystemExit) as exc:
            app.main([
                "edges", "remove", "vitalik.eth", "santi.eth",
                "--input", str(pairs_file), "--store", str(edges_path),
            ])
        assert "Can only delete custom edges" in exc.value.code

    def test_clear(self, populated_edges_path, capsys):
        app.main(["edges", "clear", "--store", str(populated_edges_path)])
        assert "Cleared 2 custom edges." in capsys.readouterr().out
        assert len(EdgeStore(populated_edges_path)) == 0

    def test_list_empty(self, edges_path, capsys):
        app.main(["edges", "list", "--store", str(edges_path)])
        assert "No custom edges." in capsys.readouterr().out

    def test_push_requires_database(self, populated_edges_path):
        with pytest.raises(SystemExit) as exc:
            app.main(["edges", "push", "--store", str(populated_edges_path)])
        assert "No database configured" in exc.value.code

    def test_push_then_pull(self, populated_edges_path, edges_path, database_url, capsys):
        app.main(["edges", "push", "--store", str(populated_edges_path), "--database-url", database_url])
        app.main(["edges", "pull", "--store", str(edges_path), "--database-url", database_url])

        out = capsys.readouterr().out
        assert "Done. pushed=2 failed=0" in out
        assert "Done. added=2 total=2" in out

    def test_add_with_remote_mirror(self, edges_path, database_url, capsys):
        app.main([
            "edges", "add", "a.eth", "b.eth", "--remote",
            "--store", str(edges_path), "--database-url", database_url,
        ])

        assert RemoteEdgeStore(database_url).has_friendship("b.eth", "a.eth")
        assert "[warn]" not in capsys.readouterr().out


class TestMain:
    def test_version(self, capsys):
        app.main(["--version"])
        assert capsys.readouterr().out.strip() == __version__

    def test_no_command_prints_help(self, capsys):
        app.main([])
        assert "usage: ensgraph" in capsys.readouterr().out


class TestLoggingConfiguration:
    """Logging follows settings loaded after .env, not the import-time environment."""

    def test_level_from_dotenv(self, tmp_path, capsys):
        (tmp_path / ".env").write_text("ENSGRAPH_LOG_LEVEL=ERROR\n")

        app.main(["--version"])

        assert get_logger().logger.level == 40
        assert capsys.readouterr().out.strip() == __version__

    def test_log_dir_from_dotenv(self, tmp_path):
        (tmp_path / ".env").write_text(f"ENSGRAPH_LOG_DIR={tmp_path / 'logs'}\n")

        app.main(["--version"])
        get_logger().info("written to file")

        log_files = list((tmp_path / "logs").glob("ensgraph_*.log"))
        assert len(log_files) == 1
        assert "written to file" in log_files[0].read_text()

    def test_invalid_level_is_a_configuration_error(self, tmp_path):
        (tmp_path / ".env").write_text("ENSGRAPH_LOG_LEVEL=verbose\n")

        with pytest.raises(SystemExit) as exc:
            app.main(["--version"])

        assert "Invalid configuration" in exc.value.code
        assert "ENSGRAPH_LOG_LEVEL" in exc.value.code
