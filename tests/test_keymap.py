import pytest

from codeflow.inline import CreateLog, CreateVault, Rename
from codeflow.keymap import normalize_chord


@pytest.mark.parametrize("key, chord", [
    ("ctrl+s", "ctrl+s"),
    ("meta+s", "ctrl+s"),
    ("cmd+shift+p", "ctrl+shift+p"),
    ("shift+ctrl+p", "ctrl+shift+p"),
    ("ctrl+P", "ctrl+shift+p"),
    ("F2", "f2"),
    ("g", "g"),
])
def test_normalize_chord(key, chord):
    assert normalize_chord(key) == chord


async def test_unbound_key(dispatcher):
    assert not await dispatcher.dispatch("ctrl+z")


async def test_palette_opens_even_while_typing(dispatcher, palette):
    assert await dispatcher.dispatch("meta+shift+p", typing=True)
    assert palette.is_open


async def test_save_and_run_shortcuts(dispatcher, store, session, backend, seeded):
    await store.load_spaces()
    await session.select_log(seeded["main"])
    session.edit("print(3)")
    assert await dispatcher.dispatch("ctrl+s", typing=True)
    assert backend.logs[seeded["main"]]["code"] == "print(3)"
    assert await dispatcher.dispatch("ctrl+r", typing=True)
    assert backend.run_calls == [{"language": "python", "code": "print(3)"}]


async def test_plain_letters_ignored_while_typing(dispatcher, prompt, inline):
    assert not await dispatcher.dispatch("g", typing=True)
    assert not await dispatcher.dispatch("a", typing=True)
    assert not prompt.is_open
    assert inline.mode is None


async def test_g_opens_generate_prompt(dispatcher, prompt):
    assert await dispatcher.dispatch("g")
    assert prompt.is_open


async def test_delete_key(dispatcher, store, session, backend, seeded):
    assert await dispatcher.dispatch("delete")
    assert backend.requests == []

    await store.load_spaces()
    await session.select_log(seeded["main"])
    assert await dispatcher.dispatch("delete")
    assert session.document is None
    assert seeded["main"] not in backend.logs


async def test_explorer_keys(dispatcher, store, inline, seeded):
    await store.load_spaces()
    store.highlight(seeded["vault"])
    await dispatcher.dispatch("a")
    assert inline.mode == CreateVault(seeded["vault"])
    await dispatcher.dispatch("n")
    assert inline.mode == CreateLog(seeded["vault"])
    await dispatcher.dispatch("f2")
    assert isinstance(inline.mode, Rename)
    assert inline.draft == "src"
