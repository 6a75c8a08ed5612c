"""Tests for the command line entry point."""

import argparse
from pathlib import Path
from unittest.mock import patch

import pytest

from holdingpen import main as cli
from holdingpen.pipeline import PipelineOutcome
from holdingpen.storage import IndexQueryError, ObjectStoreError


def outcome(succeeded=True):
    result = PipelineOutcome(name="test", completed=True)
    if not succeeded:
        result.error = RuntimeError("boom")
    return result


class TestParseDuration:

    @pytest.mark.parametrize(
        "text, seconds",
        [("30s", 30.0), ("2m", 120.0), ("500ms", 0.5), ("1m30s", 90.0), ("1h", 3600.0), ("45", 45.0)],
    )
    def test_valid(self, text, seconds):
        assert cli.parse_duration(text) == pytest.approx(seconds)

    @pytest.mark.parametrize("text", ["", "soon", "30x", "s30", "1m 30s"])
    def test_invalid(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_duration(text)


class TestParser:

    def test_find_archived_defaults(self):
        args = cli.build_parser().parse_args(["find-archived"])
        assert args.target == "holding-pen"
        assert args.proxy == "proxies"
        assert args.threads == 4
        assert args.proxy_threads == 10
        assert args.only_with_duplicates is False

    def test_find_archived_options(self):
        args = cli.build_parser().parse_args([
            "find-archived",
            "--timeout", "2m",
            "--exclude", "scratch,temp",
            "--output", "out.csv",
        ])
        assert args.timeout == 120.0
        assert args.exclude == ["scratch", "temp"]
        assert args.output == Path("out.csv")

    def test_fetch_and_delete_options(self):
        args = cli.build_parser().parse_args([
            "--debug",
            "fetch-and-delete",
            "--input", "r.csv",
            "--really-delete",
            "--skip-download",
            "--threads", "8",
        ])
        assert args.debug is True
        assert args.really_delete is True
        assert args.skip_download is True
        assert args.threads == 8

    def test_rejects_zero_threads(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["fetch-and-delete", "--threads", "0"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestFindArchivedExitCodes:

    def test_success(self):
        with patch.object(cli, "ObjectStore") as store_cls, \
             patch.object(cli, "ArchiveIndexClient"), \
             patch.object(cli, "run_discovery", return_value=outcome()) as run:
            assert cli.main(["find-archived", "--target", "pen"]) == cli.EXIT_OK

        store_cls.return_value.connect.assert_called_once_with(30.0)
        assert run.call_args.args[0].target_bucket == "pen"

    def test_pipeline_error(self):
        with patch.object(cli, "ObjectStore"), \
             patch.object(cli, "ArchiveIndexClient"), \
             patch.object(cli, "run_discovery", return_value=outcome(succeeded=False)):
            assert cli.main(["find-archived"]) == cli.EXIT_PIPELINE_ERROR

    def test_index_unreachable(self):
        with patch.object(cli, "ObjectStore"), \
             patch.object(cli, "ArchiveIndexClient") as index_cls, \
             patch.object(cli, "run_discovery") as run:
            index_cls.return_value.ping.side_effect = IndexQueryError("refused")
            assert cli.main(["find-archived"]) == cli.EXIT_SETUP_ERROR
        run.assert_not_called()


class TestFetchAndDeleteExitCodes:

    def test_success(self):
        with patch.object(cli, "ObjectStore"), \
             patch.object(cli, "run_cleanup", return_value=outcome()) as run:
            assert cli.main(["fetch-and-delete", "--bucket", "pen", "--really-delete"]) == cli.EXIT_OK

        options = run.call_args.args[0]
        assert options.root_bucket == "pen"
        assert options.really_delete is True

    def test_unreadable_input(self, tmp_path):
        with patch.object(cli, "ObjectStore"):
            code = cli.main(["fetch-and-delete", "--input", str(tmp_path / "missing.csv")])
        assert code == cli.EXIT_SETUP_ERROR

    def test_s3_setup_failure(self):
        with patch.object(cli, "ObjectStore") as store_cls:
            store_cls.return_value.connect.side_effect = ObjectStoreError(
                "connect", "s3", None, RuntimeError("no region"),
            )
            assert cli.main(["fetch-and-delete"]) == cli.EXIT_SETUP_ERROR

    def test_pipeline_error(self):
        with patch.object(cli, "ObjectStore"), \
             patch.object(cli, "run_cleanup", return_value=outcome(succeeded=False)):
            assert cli.main(["fetch-and-delete"]) == cli.EXIT_PIPELINE_ERROR
