import pytest

from codeflow.commands import Command, CommandPalette, CommandRegistry
from codeflow.errors import ConnectivityError
from codeflow.inline import CreateSpace, CreateVault

from conftest import messages


def make_registry(calls):
    def record(name):
        return lambda: calls.append(name)

    return CommandRegistry([
        Command("save", "Save", "", record("save")),
        Command("run", "Run Code", "", record("run")),
        Command("generate", "Generate Code", "", record("generate")),
    ])


def test_duplicate_ids_rejected():
    with pytest.raises(ValueError):
        CommandRegistry([Command("x", "A", "", print), Command("x", "B", "", print)])


def test_filter_is_case_insensitive_substring_in_order():
    registry = make_registry([])
    assert [c.id for c in registry.filter("CODE")] == ["run", "generate"]
    assert [c.id for c in registry.filter("")] == ["save", "run", "generate"]
    assert registry.filter("zzz") == []


def test_navigation_wraps(notes):
    palette = CommandPalette(make_registry([]), notes)
    palette.open()
    palette.move_up()
    assert palette.current.id == "generate"
    palette.move_down()
    assert palette.current.id == "save"


def test_filter_change_resets_selection(notes):
    palette = CommandPalette(make_registry([]), notes)
    palette.open()
    palette.move_down()
    palette.set_filter("code")
    assert palette.selected == 0
    assert palette.current.id == "run"


async def test_execute_runs_and_closes(notes):
    calls = []
    palette = CommandPalette(make_registry(calls), notes)
    palette.open()
    palette.set_filter("gen")
    command = await palette.execute()
    assert command.id == "generate"
    assert calls == ["generate"]
    assert not palette.is_open
    assert palette.filter_text == ""


async def test_execute_by_index(notes):
    calls = []
    palette = CommandPalette(make_registry(calls), notes)
    palette.open()
    await palette.execute(1)
    assert calls == ["run"]


async def test_execute_with_no_match_only_closes(notes):
    calls = []
    palette = CommandPalette(make_registry(calls), notes)
    palette.open()
    palette.set_filter("nothing")
    assert await palette.execute() is None
    assert calls == []
    assert not palette.is_open


async def test_failing_command_is_reported_and_closes(notes):
    async def broken():
        raise ConnectivityError("backend down")

    palette = CommandPalette(CommandRegistry([Command("x", "Broken", "", broken)]), notes)
    palette.open()
    await palette.execute()
    assert not palette.is_open
    assert messages(notes, "error") == ["backend down"]


# ── Built-in command list ───────────────────────────────────────────────

def test_builtin_commands(palette):
    ids = [c.id for c in palette.registry]
    assert ids == ["create-space", "create-vault", "create-log", "rename", "rename-space", "save", "run",
                   "generate", "delete", "delete-node", "clear-output", "refresh"]


async def test_create_commands_enter_inline_modes(palette, inline, store, seeded):
    await store.load_spaces()
    palette.open()
    palette.set_filter("create space")
    await palette.execute()
    assert inline.mode == CreateSpace()

    palette.open()
    palette.set_filter("create vault")
    await palette.execute()
    assert inline.mode == CreateVault(None)


async def test_run_command_hits_session(palette, store, session, backend, seeded):
    await store.load_spaces()
    await session.select_log(seeded["main"])
    palette.open()
    palette.set_filter("run")
    await palette.execute()
    assert len(backend.run_calls) == 1
    assert session.run_result is not None


async def test_clear_output_command_empties_output(palette, store, session, seeded):
    await store.load_spaces()
    await session.select_log(seeded["main"])
    await session.run()
    assert session.run_result is not None

    palette.open()
    palette.set_filter("clear")
    assert [c.id for c in palette.matches] == ["clear-output"]
    await palette.execute()
    assert session.run_result is None
    assert session.document.id == seeded["main"]
    assert not palette.is_open


async def test_generate_command_opens_prompt(palette, prompt):
    palette.open()
    palette.set_filter("generate")
    await palette.execute()
    assert prompt.is_open


async def test_delete_highlighted_command(palette, store, session, backend, notes, seeded):
    await store.load_spaces()
    palette.open()
    palette.set_filter("highlighted")
    await palette.execute()
    assert messages(notes, "info") == ["Select a vault or log in the explorer first"]

    store.highlight(seeded["app"])
    palette.open()
    palette.set_filter("highlighted")
    await palette.execute()
    assert seeded["app"] not in backend.logs


# ── Generate prompt ─────────────────────────────────────────────────────

async def test_prompt_clears_only_after_success(prompt, store, session, backend, seeded):
    await store.load_spaces()
    await session.select_log(seeded["main"])
    prompt.open()
    prompt.set_text("sort a list")
    backend.fail("POST", "/api/ai/generate", status=500, body={"error": "upstream"})
    assert not await prompt.submit()
    assert prompt.text == "sort a list"
    assert not prompt.is_open

    backend.failures.clear()
    prompt.open()
    assert await prompt.submit()
    assert prompt.text == ""
    assert session.buffer == backend.generated


async def test_blank_prompt_stays_open(prompt, notes, store, session, seeded):
    await store.load_spaces()
    await session.select_log(seeded["main"])
    prompt.open()
    prompt.set_text("  ")
    assert not await prompt.submit()
    assert prompt.is_open
    assert messages(notes, "info") == ["Please enter a prompt"]


def test_prompt_cancel_clears(prompt):
    prompt.open()
    prompt.set_text("draft")
    prompt.cancel()
    assert not prompt.is_open
    assert prompt.text == ""


async def test_prompt_language_without_document(prompt, session, backend):
    prompt.set_language("go")
    prompt.open()
    prompt.set_text("hello server")
    assert await prompt.submit()
    assert backend.generate_calls == [{"prompt": "hello server", "language": "go"}]
    assert session.buffer == backend.generated
    assert session.document is None


def test_prompt_rejects_unknown_language(prompt):
    with pytest.raises(ValueError):
        prompt.set_language("cobol")
    prompt.set_language("rust")
    prompt.set_language(None)
    assert prompt.language is None
