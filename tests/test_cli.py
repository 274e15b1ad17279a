"""Tests for the gitdocs command-line interface."""

import json

import pytest

from gitdocs import Repository
from gitdocs.cli import main


@pytest.fixture
def cli_repo(runner, repo_path):
    r = runner.invoke(main, ["init", "--repo", repo_path])
    assert r.exit_code == 0, r.output
    for path, text in [("file1.txt", "one"), ("file2.txt", "two"),
                       ("skip.txt", "skip"), ("folder/file3.txt", "three")]:
        r = runner.invoke(main, ["write", "--repo", repo_path, path, "-m", f"Add {path}"],
                          input=text)
        assert r.exit_code == 0, r.output
    return repo_path


class TestInit:
    def test_init(self, runner, repo_path):
        r = runner.invoke(main, ["init", "--repo", repo_path, "--branch", "site"])
        assert r.exit_code == 0, r.output
        assert Repository.open(repo_path).commit_info("site").message == "Initialize site"

    def test_init_existing(self, runner, cli_repo):
        r = runner.invoke(main, ["init", "--repo", cli_repo])
        assert r.exit_code != 0
        assert "already exists" in r.output

    def test_missing_repo_option(self, runner, monkeypatch):
        monkeypatch.delenv("GITDOCS_REPO", raising=False)
        r = runner.invoke(main, ["ls"])
        assert r.exit_code != 0
        assert "No repository specified" in r.output

    def test_repo_from_env(self, runner, cli_repo):
        r = runner.invoke(main, ["ls"], env={"GITDOCS_REPO": cli_repo})
        assert r.exit_code == 0, r.output
        assert "file1.txt" in r.output


class TestLs:
    def test_all(self, runner, cli_repo):
        r = runner.invoke(main, ["ls", "--repo", cli_repo])
        assert r.exit_code == 0, r.output
        assert r.output.splitlines() == [
            "file1.txt", "file2.txt", "folder/file3.txt", "skip.txt",
        ]

    def test_pattern_ignore(self, runner, cli_repo):
        r = runner.invoke(main, ["ls", "--repo", cli_repo, "-p", "*.txt", "-x", "skip.txt"])
        assert r.output.splitlines() == ["file1.txt", "file2.txt"]

    def test_cwd(self, runner, cli_repo):
        r = runner.invoke(main, ["ls", "--repo", cli_repo, "--cwd", "folder"])
        assert r.output.splitlines() == ["file3.txt"]

    def test_unknown_branch(self, runner, cli_repo):
        r = runner.invoke(main, ["ls", "--repo", cli_repo, "-b", "nope"])
        assert r.exit_code != 0
        assert "fatal" in r.output


class TestCatWrite:
    def test_cat(self, runner, cli_repo):
        r = runner.invoke(main, ["cat", "--repo", cli_repo, "folder/file3.txt"])
        assert r.exit_code == 0, r.output
        assert r.output == "three"

    def test_cat_missing(self, runner, cli_repo):
        r = runner.invoke(main, ["cat", "--repo", cli_repo, "nope.txt"])
        assert r.exit_code != 0

    def test_write_prints_commit(self, runner, cli_repo):
        r = runner.invoke(main, ["write", "--repo", cli_repo, "new.txt",
                                 "-m", "Add new", "--author-name", "Ada",
                                 "--author-email", "ada@example.com"], input="new")
        assert r.exit_code == 0, r.output
        info = Repository.open(cli_repo).commit_info("main")
        assert r.output.strip() == info.hash
        assert info.message == "Add new"
        assert info.author_name == "Ada"
        assert info.committer_name == "Ada"

    def test_write_empty_input(self, runner, cli_repo):
        before = Repository.open(cli_repo).resolve_ref("main")
        r = runner.invoke(main, ["write", "--repo", cli_repo, "empty.txt"], input="")
        assert r.exit_code == 0, r.output
        assert r.output == ""
        assert Repository.open(cli_repo).resolve_ref("main") == before

    def test_write_bad_path(self, runner, cli_repo):
        r = runner.invoke(main, ["write", "--repo", cli_repo, "../x.txt"], input="x")
        assert r.exit_code != 0

    def test_author_from_env(self, runner, cli_repo):
        r = runner.invoke(main, ["write", "--repo", cli_repo, "env.txt"], input="x",
                          env={"GITDOCS_AUTHOR_NAME": "Env", "GITDOCS_COMMITTER_NAME": "Bot"})
        assert r.exit_code == 0, r.output
        info = Repository.open(cli_repo).commit_info("main")
        assert (info.author_name, info.committer_name) == ("Env", "Bot")


class TestInfo:
    def test_info_json(self, runner, cli_repo):
        r = runner.invoke(main, ["info", "--repo", cli_repo])
        assert r.exit_code == 0, r.output
        data = json.loads(r.output)
        assert data["message"] == "Add folder/file3.txt"
        assert data["abbrev"] == data["hash"][:7]

    def test_info_unknown(self, runner, cli_repo):
        r = runner.invoke(main, ["info", "--repo", cli_repo, "nope"])
        assert r.exit_code != 0


class TestChanged:
    def test_file_checkpoint(self, runner, cli_repo, tmp_path):
        last = str(tmp_path / "last")
        args = ["changed", "--repo", cli_repo, "--checkpoint-file", last, "-p", "*.txt"]
        r = runner.invoke(main, args)
        assert r.exit_code == 0, r.output
        assert r.output.splitlines() == ["file1.txt", "file2.txt", "skip.txt"]

        r = runner.invoke(main, args)
        assert r.output == ""

        runner.invoke(main, ["write", "--repo", cli_repo, "file2.txt"], input="TWO")
        r = runner.invoke(main, args)
        assert r.output.splitlines() == ["file2.txt"]

    def test_ref_checkpoint_with_trigger(self, runner, cli_repo):
        args = ["changed", "--repo", cli_repo, "--checkpoint-ref", "site",
                "-p", "*.txt", "-x", "skip.txt", "-t", "*1.txt=folder/*"]
        r = runner.invoke(main, args)
        assert r.output.splitlines() == ["file1.txt", "file2.txt"]
        assert Repository.open(cli_repo).ref_target("refs/checkpoints/site") is not None

        runner.invoke(main, ["write", "--repo", cli_repo, "file1.txt"], input="ONE")
        r = runner.invoke(main, args)
        assert r.exit_code == 0, r.output
        assert r.output.splitlines() == ["file1.txt", "folder/file3.txt"]

    def test_requires_one_checkpoint(self, runner, cli_repo, tmp_path):
        r = runner.invoke(main, ["changed", "--repo", cli_repo])
        assert r.exit_code == 2
        r = runner.invoke(main, ["changed", "--repo", cli_repo, "--checkpoint-ref", "a",
                                 "--checkpoint-file", str(tmp_path / "f")])
        assert r.exit_code == 2

    def test_bad_trigger(self, runner, cli_repo):
        r = runner.invoke(main, ["changed", "--repo", cli_repo, "--checkpoint-ref", "a",
                                 "-t", "no-equals-sign"])
        assert r.exit_code == 2
        assert "SRC=DEST" in r.output
