"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from anki_wordqueue.cli import main
from anki_wordqueue.models import WordEntry, WordStatus
from anki_wordqueue.store import WordStore


@pytest.fixture
def cli(tmp_path):
    queue_file = tmp_path / "word-queue.json"
    prompt_file = tmp_path / ".config.txt"
    runner = CliRunner()

    def invoke(*args, **kwargs):
        return runner.invoke(
            main,
            ["--queue-file", str(queue_file), "--prompt-file", str(prompt_file), *args],
            **kwargs,
        )

    invoke.store = WordStore(queue_file)
    invoke.prompt_file = prompt_file
    return invoke


def test_add_generates_content(cli, fake_openai, tmp_path):
    words_file = tmp_path / "words.txt"
    words_file.write_text("# GRE list\nlaconic\n", encoding="utf-8")

    result = cli("add", "lucid", "opaque", "--input", str(words_file))

    assert result.exit_code == 0, result.output
    assert "Added 3 word(s)" in result.output
    entries = cli.store.load()
    assert [e.word for e in entries] == ["lucid", "opaque", "laconic"]
    assert all(e.status == WordStatus.GENERATED for e in entries)


def test_add_without_words_fails(cli):
    result = cli("add")
    assert result.exit_code != 0
    assert "No words given" in result.output


def test_list_and_filter(cli):
    cli.store.save([WordEntry(word="lucid", status=WordStatus.GENERATED), WordEntry(word="opaque")])

    result = cli("list")
    assert result.exit_code == 0
    assert "lucid" in result.output and "opaque" in result.output

    result = cli("list", "--status", "pending", "--json")
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert [d["word"] for d in data] == ["opaque"]
    assert data[0]["ai_generated"] is False


def test_delete_and_missing_word(cli):
    entry = WordEntry(word="lucid")
    cli.store.save([entry])

    result = cli("delete", entry.id)
    assert result.exit_code == 0
    assert "Deleted lucid" in result.output
    assert cli.store.load() == []

    result = cli("delete", entry.id)
    assert result.exit_code == 1
    assert "Word not found" in result.output


def test_approve_requires_generated_word(cli):
    entry = WordEntry(word="lucid")
    cli.store.save([entry])

    result = cli("approve", entry.id)

    assert result.exit_code == 1
    assert "Cannot move word from 'pending' to 'approved'" in result.output


def test_clear_by_status(cli):
    cli.store.save([WordEntry(word="lucid", status=WordStatus.REJECTED), WordEntry(word="opaque")])

    result = cli("clear", "--status", "rejected", "--yes")

    assert result.exit_code == 0
    assert "Removed 1 word(s)" in result.output
    assert [e.word for e in cli.store.load()] == ["opaque"]


def test_config_shows_custom_prompts(cli):
    cli.prompt_file.write_text("[SYSTEM_PROMPT]\nBe brief.\n", encoding="utf-8")

    result = cli("config")

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["system_prompt"] == "Be brief."
    assert data["is_custom"] is True


def test_export_with_nothing_ready(cli):
    cli.store.save([WordEntry(word="lucid")])

    result = cli("export")

    assert result.exit_code == 1
    assert "No words ready for export" in result.output
