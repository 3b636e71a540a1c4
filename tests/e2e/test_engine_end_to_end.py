#!/usr/bin/env python3
"""
End-to-end tests of SyncEngine against the in-memory To Do service.

Each test drives the public engine operations and then checks both the
vault files and the fake service state, not just return values.
"""

import json
from datetime import date
import os

import pytest

from mstodo_sync.core.exceptions import AuthenticationError, ConfigurationError


def _read(vault_dir, rel_path):
    return (vault_dir / rel_path).read_text(encoding="utf-8")


def _mtime_after(api):
    """A POSIX mtime later than every timestamp the fake has issued."""
    return api.clock.timestamp() + 3600


def _mtime_before(api):
    return api.clock.timestamp() - 3600


@pytest.mark.e2e
def test_sync_all_pushes_pulls_and_skips(engine, fake_api, write_note, vault_dir, sync_config):
    fake_api.seed_task("list-inbox", "t-push", "Old remote title")
    fake_api.seed_task("list-inbox", "t-pull", "Fresh remote title", status="completed")
    fake_api.seed_task("list-inbox", "t-same", "Same everywhere")

    write_note("Push.md", "- [ ] Edited locally ^push1\n", mtime=_mtime_after(fake_api))
    write_note("Pull.md", "- [ ] Stale local ^pull1\n", mtime=_mtime_before(fake_api))
    write_note("Same.md", "- [ ] Same everywhere ^same1\n")
    sync_config.task_id_lookup.update({"push1": "t-push", "pull1": "t-pull", "same1": "t-same"})

    result = engine.sync_all()

    assert (result.pushed, result.pulled, result.skipped, result.failed) == (1, 1, 1, 0)
    assert result.updated_count == 2
    assert result.failed_lists == []
    assert fake_api.task("list-inbox", "t-push")["title"] == "Edited locally"
    assert _read(vault_dir, "Pull.md") == "- [x] Fresh remote title ^pull1\n"
    assert os.path.exists(sync_config.cache_path)


@pytest.mark.e2e
def test_second_sync_is_steady_state(engine, fake_api, write_note, sync_config):
    fake_api.seed_task("list-inbox", "t1", "Remote wins")
    write_note("Note.md", "- [ ] Old ^a1\n", mtime=_mtime_before(fake_api))
    sync_config.task_id_lookup["a1"] = "t1"

    engine.sync_all()
    updates_before = len(fake_api.calls_named("update_task"))
    second = engine.sync_all()

    assert second.updated_count == 0
    assert second.skipped == 1
    assert len(fake_api.calls_named("update_task")) == updates_before


@pytest.mark.e2e
def test_sync_requires_vault(fake_api, sync_config, config_path):
    from mstodo_sync.sync.context import SyncContext
    from mstodo_sync.sync.engine import SyncEngine

    sync_config.vault_path = None
    engine = SyncEngine(sync_config, context=SyncContext.from_config(sync_config, api=fake_api),
                        config_path=config_path)

    with pytest.raises(ConfigurationError):
        engine.sync_all()


@pytest.mark.e2e
def test_auth_failure_reaches_caller(engine, fake_api, write_note):
    fake_api.fail_lists["list-inbox"] = AuthenticationError("expired", status_code=401)
    write_note("Note.md", "- [ ] x ^a1\n")

    with pytest.raises(AuthenticationError):
        engine.sync_all()


@pytest.mark.e2e
def test_reset_cache_forces_cold_start(engine, fake_api, sync_config):
    fake_api.seed_task("list-inbox", "t1", "One")
    engine.sync_all()
    assert os.path.exists(sync_config.cache_path)

    assert engine.reset_cache()
    assert not os.path.exists(sync_config.cache_path)

    engine.sync_all()
    assert fake_api.calls_named("iter_tasks_delta")[-1] == ("list-inbox", "")


@pytest.mark.e2e
def test_add_missing_local_tasks(engine, fake_api, vault_dir, sync_config, config_path):
    fake_api.seed_task("list-inbox", "t-open", "Write report", importance="high",
                       dueDateTime={"dateTime": "2024-07-01T00:00:00.0000000", "timeZone": "UTC"})
    fake_api.seed_task("list-inbox", "t-done", "Already done", status="completed")
    fake_api.seed_task("list-inbox", "t-tracked", "Tracked")
    fake_api.seed_task("list-inbox", "t-other", "Call plumber")
    sync_config.task_id_lookup["known"] = "t-tracked"
    engine.sync_all()

    added = engine.add_missing_local_tasks()

    assert added == 2
    inbox = _read(vault_dir, "MicrosoftToDoInbox.md")
    assert "- [ ] Write report 📅 2024-07-01 ⏫ ^" in inbox
    assert "Call plumber" in inbox
    assert "Already done" not in inbox
    assert "Tracked" not in inbox
    assert set(sync_config.task_id_lookup.values()) == {"t-tracked", "t-open", "t-other"}
    saved = json.loads(open(config_path, encoding="utf-8").read())
    assert len(saved["task_id_lookup"]) == 3
    assert len(fake_api.calls_named("create_linked_resource")) == 2

    # Imported blocks are now tracked, so a second run adds nothing
    assert engine.add_missing_local_tasks() == 0


@pytest.mark.e2e
def test_add_missing_can_include_completed(engine, fake_api, vault_dir, sync_config):
    sync_config.include_completed_missing = True
    fake_api.seed_task("list-inbox", "t-done", "Already done", status="completed")
    engine.sync_all()

    assert engine.add_missing_local_tasks("Imported.md") == 1
    assert "- [x] Already done ^" in _read(vault_dir, "Imported.md")


@pytest.mark.e2e
def test_generate_summary_document(engine, fake_api, vault_dir):
    fake_api.seed_list("list-work", "Work")
    fake_api.seed_task("list-work", "w1", "beta", status="completed")
    fake_api.seed_task("list-work", "w2", "alpha", body="details\nmore",
                       checklistItems=[{"id": "c1", "displayName": "step", "isChecked": True}])
    fake_api.seed_task("list-work", "w3", "gamma")
    engine.sync_all()

    written = engine.generate_summary_document("Summary.md")

    summary = _read(vault_dir, written)
    work = summary.split("## Work", 1)[1]
    assert work.index("alpha") < work.index("gamma") < work.index("beta")
    assert "  > details\n  > more" in work
    assert "  - [x] step" in work
    assert "- [x] beta 🔼" in work
    # Empty lists are left out
    assert "## Inbox" not in summary


@pytest.mark.e2e
def test_summary_excludes_removed_tasks(engine, fake_api, vault_dir, cache_store):
    from mstodo_sync.core.models import RemoteTask, TaskList, TaskListCollection
    task_list = TaskList(list_id="L", name="Lists")
    task_list.replace_tasks([
        RemoteTask.from_dict({"id": "a", "title": "kept"}),
        RemoteTask.from_dict({"id": "b", "title": "dropped", "@removed": {"reason": "deleted"}}),
    ])
    cache_store.save(TaskListCollection(lists=[task_list]))

    summary = _read(vault_dir, engine.generate_summary_document("S.md"))

    assert "kept" in summary
    assert "dropped" not in summary


@pytest.mark.e2e
def test_sync_regenerates_configured_summary(engine, fake_api, vault_dir, sync_config):
    sync_config.summary_path = "Tasks Summary.md"
    fake_api.seed_task("list-inbox", "t1", "Shown in summary")

    engine.sync_all()

    assert "Shown in summary" in _read(vault_dir, "Tasks Summary.md")


@pytest.mark.e2e
def test_cleanup_task_ids(engine, write_note, sync_config, config_path):
    write_note("Note.md", "- [ ] Still here ^keep1\n")
    sync_config.task_id_lookup.update({"keep1": "t1", "gone1": "t2"})

    assert engine.cleanup_task_ids() == 1
    assert sync_config.task_id_lookup == {"keep1": "t1"}
    assert json.loads(open(config_path, encoding="utf-8").read())["task_id_lookup"] == {"keep1": "t1"}


@pytest.mark.e2e
def test_push_document_creates_and_updates(engine, fake_api, write_note, vault_dir, sync_config):
    fake_api.seed_task("list-inbox", "t-existing", "Existing")
    engine.sync_all()
    write_note("Plan.md", "\n".join([
        "# Plan",
        "- [ ] Brand new task ⏫",
        "  - [ ] first step",
        "- [x] Existing ^ex1",
        "- [ ] Not selected",
        "",
    ]))
    sync_config.task_id_lookup["ex1"] = "t-existing"

    result = engine.push_document("Plan.md", line_numbers={2, 4})

    assert (result.created, result.updated, result.failed) == (1, 1, 0)
    created_args = fake_api.calls_named("create_task")[0]
    assert created_args[0] == "list-inbox"
    assert created_args[1]["importance"] == "high"
    assert fake_api.task("list-inbox", "t-existing")["status"] == "completed"

    lines = _read(vault_dir, "Plan.md").split("\n")
    assert lines[1].startswith("- [ ] Brand new task ⏫ ^")
    anchor = lines[1].rsplit("^", 1)[1]
    new_id = sync_config.task_id_lookup[anchor]
    assert fake_api.task("list-inbox", new_id)["checklistItems"][0]["displayName"] == "first step"
    assert lines[4] == "- [ ] Not selected"

    link_calls = fake_api.calls_named("create_linked_resource")
    assert (("list-inbox", new_id, anchor, "obsidian://open?vault=Vault&file=Plan.md") in link_calls)


@pytest.mark.e2e
def test_push_document_skips_unchanged(engine, fake_api, write_note):
    fake_api.seed_task("list-inbox", "t1", "Same")
    engine.sync_all()
    write_note("Same.md", "- [ ] Same ^s1\n")
    engine.config.task_id_lookup["s1"] = "t1"

    result = engine.push_document("Same.md")

    assert result.unchanged == 1
    assert fake_api.calls_named("update_task") == []


@pytest.mark.e2e
def test_push_resolves_default_list_by_name(engine, fake_api, write_note, sync_config):
    fake_api.seed_list("list-work", "Work (1)")
    sync_config.resolve_list_by = "name"
    sync_config.list_name = "work"
    engine.sync_all()
    write_note("W.md", "- [ ] For work\n")

    engine.push_document("W.md")

    assert fake_api.calls_named("create_task")[0][0] == "list-work"


@pytest.mark.e2e
def test_push_creates_missing_list_when_configured(engine, fake_api, write_note, sync_config):
    sync_config.resolve_list_by = "name"
    sync_config.list_name = "Brand New"
    sync_config.create_list_if_missing = True
    write_note("N.md", "- [ ] Goes to new list\n")

    result = engine.push_document("N.md")

    assert result.created == 1
    assert fake_api.calls_named("create_task_list") == [("Brand New",)]
    assert engine.cached_lists().find_list_by_name("Brand New") is not None


@pytest.mark.e2e
def test_push_without_resolvable_list_fails_loudly(engine, fake_api, write_note, sync_config):
    sync_config.resolve_list_by = "name"
    sync_config.list_name = "Nowhere"
    write_note("N.md", "- [ ] Orphan\n")

    with pytest.raises(ConfigurationError):
        engine.push_document("N.md")


@pytest.mark.e2e
def test_pull_document_refreshes_tracked_blocks(engine, fake_api, write_note, vault_dir, sync_config):
    fake_api.seed_task("list-inbox", "t1", "Remote one", importance="low")
    fake_api.seed_task("list-inbox", "t2", "Remote two")
    sync_config.task_id_lookup.update({"a1": "t1", "a2": "t2"})
    write_note("Doc.md", "- [ ] local one ^a1\n  > old body\n- [ ] local two ^a2\n- [ ] free\n",
               mtime=_mtime_after(fake_api))
    engine._synchronizer().synchronize()

    updated = engine.pull_document("Doc.md", line_numbers={1})

    assert updated == 1
    assert _read(vault_dir, "Doc.md") == (
        "- [ ] Remote one 🔽 ^a1\n- [ ] local two ^a2\n- [ ] free\n"
    )
    assert fake_api.calls_named("update_task") == []


@pytest.mark.e2e
def test_pulled_title_with_priority_marker_stays_put(engine, fake_api, write_note, vault_dir,
                                                     sync_config):
    fake_api.seed_task("list-inbox", "t1", "Ship ⏫ release")
    fake_api.seed_task("list-inbox", "t2", "Escalate ⏫")
    write_note("Ship.md", "- [ ] Ship ^s1\n- [ ] Escalate ^s2\n", mtime=_mtime_before(fake_api))
    sync_config.task_id_lookup.update({"s1": "t1", "s2": "t2"})

    assert engine.sync_all().pulled == 2

    # The note is now newer than the remote; nothing may be pushed back
    os.utime(vault_dir / "Ship.md", (_mtime_after(fake_api),) * 2)
    second = engine.sync_all()

    assert (second.pushed, second.skipped) == (0, 2)
    assert fake_api.calls_named("update_task") == []
    assert fake_api.task("list-inbox", "t2")["importance"] == "normal"


@pytest.mark.e2e
def test_push_document_keeps_crlf_line_endings(engine, vault_dir):
    (vault_dir / "Win.md").write_bytes(b"# Plan\r\n- [ ] New one\r\n- [ ] Two\r\n")

    result = engine.push_document("Win.md")

    data = (vault_dir / "Win.md").read_bytes()
    assert result.created == 2
    assert data.count(b"\n") == data.count(b"\r\n") == 3
    assert data.startswith(b"# Plan\r\n- [ ] New one ^")


@pytest.mark.e2e
def test_add_missing_appends_in_note_newline_style(engine, fake_api, vault_dir):
    (vault_dir / "MicrosoftToDoInbox.md").write_bytes(b"# Inbox\r\n- [ ] kept")
    fake_api.seed_task("list-inbox", "t1", "Imported", body="first\nsecond")
    engine.sync_all()

    assert engine.add_missing_local_tasks() == 1

    data = (vault_dir / "MicrosoftToDoInbox.md").read_bytes()
    assert data.startswith(b"# Inbox\r\n- [ ] kept\r\n- [ ] Imported ^")
    assert data.count(b"\n") == data.count(b"\r\n")
    assert b"  > first\r\n  > second\r\n" in data


@pytest.mark.e2e
def test_today_tasks_lists_open_and_completed_today(engine, fake_api, vault_dir):
    today = date(2024, 5, 2)
    fake_api.seed_task("list-inbox", "t-open", "Buy milk",
                       createdDateTime="2024-04-30T08:00:00.0000000Z", body="semi skimmed")
    fake_api.seed_task("list-inbox", "t-fresh", "Answer mail",
                       createdDateTime="2024-05-02T07:00:00.0000000Z")
    fake_api.seed_task("list-inbox", "t-today", "Pay bill", status="completed",
                       completedDateTime={"dateTime": "2024-05-02T09:00:00.0000000", "timeZone": "UTC"})
    fake_api.seed_task("list-inbox", "t-old", "Old chore", status="completed",
                       completedDateTime={"dateTime": "2024-04-01T09:00:00.0000000", "timeZone": "UTC"})
    fake_api.seed_list("list-done", "Done")
    fake_api.seed_task("list-done", "d1", "Finished long ago", status="completed",
                       completedDateTime={"dateTime": "2023-01-01T00:00:00.0000000", "timeZone": "UTC"})
    engine.sync_all()

    content = engine.today_tasks("Today.md", today=today)

    assert content == (
        "**Inbox**\n"
        "- [ ] Answer mail\n"
        "- [ ] Buy milk  ➕ [[2024-04-30]]  💡 semi skimmed\n"
        "- [x] Pay bill\n"
    )
    assert _read(vault_dir, "Today.md") == content
