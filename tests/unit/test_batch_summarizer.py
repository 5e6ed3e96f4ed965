# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for batch summarization and content prompt assembly."""

import asyncio
from pathlib import Path

import pytest

from codeindex.batch_summarizer import BatchSummarizer
from codeindex.context_builder import ContextBuilder
from codeindex.model import AstIndex, SourceRecord
from codeindex.persistence import PersistenceError
from codeindex.stores import JsonIndexStore
from codeindex.summary_schema import FileSummary


class _FakeSummarizer:
    def __init__(
        self, failing: set[str] | None = None, raising: set[str] | None = None
    ) -> None:
        self._failing = failing or set()
        self._raising = raising or set()
        self.calls: list[str] = []

    async def summarize(
        self, file_name: str, content_prompt: str
    ) -> dict[str, FileSummary]:
        self.calls.append(file_name)
        await asyncio.sleep(0)
        if file_name in self._raising:
            raise RuntimeError("unexpected")
        if file_name in self._failing:
            return {}
        return {
            file_name: FileSummary(
                file_description=f"Summary of {Path(file_name).name}", tag="utility"
            )
        }


class _FakeContextBuilder:
    async def build(self, index: AstIndex, file_name: str) -> str:
        return f"prompt for {file_name}"


class _CountingStore(JsonIndexStore):
    def __init__(self, directory: Path, fail_on_save: int | None = None) -> None:
        super().__init__(directory)
        self.saves = 0
        self._fail_on_save = fail_on_save

    def save(self, index: AstIndex, path: Path) -> None:
        self.saves += 1
        if self.saves == self._fail_on_save:
            raise PersistenceError("disk full")
        super().save(index, path)


def _index(root: str, files: list[str]) -> AstIndex:
    return AstIndex(repository=root, files=files)


def test_ph3_bat_001_one_failure_in_fifty_persists_forty_nine(tmp_path: Path) -> None:
    files = [f"config/file{index:02d}.json" for index in range(50)]
    failing = "/repo/config/file17.json"
    store = _CountingStore(tmp_path)
    summarizer = _FakeSummarizer(failing={failing})
    controller = BatchSummarizer(summarizer, _FakeContextBuilder(), store)
    path = store.path_for("/repo")

    result = asyncio.run(controller.summarize_all(_index("/repo", files), path))

    assert result.total == 50
    assert result.summarized == 49
    assert result.failed == [failing]
    assert result.batches == 1
    persisted = store.load(path)
    assert len(persisted.file_summaries) == 49
    assert failing not in persisted.file_summaries
    assert persisted.file_summaries["/repo/config/file00.json"]["tag"] == "utility"


def test_ph3_bat_002_rerun_is_idempotent(tmp_path: Path) -> None:
    store = _CountingStore(tmp_path)
    summarizer = _FakeSummarizer()
    controller = BatchSummarizer(summarizer, _FakeContextBuilder(), store)
    index = _index("/repo", ["a.ts", "b.yml"])
    path = store.path_for("/repo")

    asyncio.run(controller.summarize_all(index, path))
    second = asyncio.run(controller.summarize_all(store.load(path), path))

    assert summarizer.calls.count("/repo/a.ts") == 1
    assert second.total == 0
    assert second.batches == 0


def test_ph3_bat_003_failed_files_are_retried_on_next_run(tmp_path: Path) -> None:
    store = _CountingStore(tmp_path)
    path = store.path_for("/repo")
    index = _index("/repo", ["a.ts", "b.ts"])
    asyncio.run(
        BatchSummarizer(
            _FakeSummarizer(failing={"/repo/b.ts"}), _FakeContextBuilder(), store
        ).summarize_all(index, path)
    )
    retry = _FakeSummarizer()

    result = asyncio.run(
        BatchSummarizer(retry, _FakeContextBuilder(), store).summarize_all(
            store.load(path), path
        )
    )

    assert retry.calls == ["/repo/b.ts"]
    assert result.summarized == 1
    assert set(store.load(path).file_summaries) == {"/repo/a.ts", "/repo/b.ts"}


def test_ph3_bat_004_progress_is_durable_per_batch_and_resumable(
    tmp_path: Path,
) -> None:
    files = [f"src/f{index}.ts" for index in range(5)]
    crashing_store = _CountingStore(tmp_path, fail_on_save=2)
    path = crashing_store.path_for("/repo")
    controller = BatchSummarizer(
        _FakeSummarizer(), _FakeContextBuilder(), crashing_store, batch_size=2
    )

    with pytest.raises(PersistenceError):
        asyncio.run(controller.summarize_all(_index("/repo", files), path))

    after_crash = crashing_store.load(path)
    assert set(after_crash.file_summaries) == {"/repo/src/f0.ts", "/repo/src/f1.ts"}

    store = _CountingStore(tmp_path)
    resumed = _FakeSummarizer()
    result = asyncio.run(
        BatchSummarizer(
            resumed, _FakeContextBuilder(), store, batch_size=2
        ).summarize_all(after_crash, path)
    )

    assert sorted(resumed.calls) == ["/repo/src/f2.ts", "/repo/src/f3.ts", "/repo/src/f4.ts"]
    assert result.batches == 2
    assert store.saves == 2
    assert len(store.load(path).file_summaries) == 5


def test_ph3_bat_005_unexpected_exception_is_isolated(tmp_path: Path, caplog) -> None:
    caplog.set_level("WARNING")
    store = _CountingStore(tmp_path)
    controller = BatchSummarizer(
        _FakeSummarizer(raising={"/repo/b.ts"}), _FakeContextBuilder(), store
    )
    path = store.path_for("/repo")

    result = asyncio.run(controller.summarize_all(_index("/repo", ["a.ts", "b.ts"]), path))

    assert result.failed == ["/repo/b.ts"]
    assert set(store.load(path).file_summaries) == {"/repo/a.ts"}
    assert any("file_name=/repo/b.ts" in record.getMessage() for record in caplog.records)


def test_ph3_bat_006_only_summarizable_extensions_are_pending(tmp_path: Path) -> None:
    controller = BatchSummarizer(
        _FakeSummarizer(), _FakeContextBuilder(), JsonIndexStore(tmp_path)
    )
    index = _index("/repo", ["a.ts", "b.md", "c.yml", "d.yaml", "e.html", "f.json", "g.css"])
    index.merge_summaries({"/repo/f.json": {"tag": "utility"}})

    assert controller.pending_files(index) == [
        "/repo/a.ts",
        "/repo/c.yml",
        "/repo/d.yaml",
        "/repo/e.html",
    ]


def test_ph3_bat_007_progress_log_reports_counts(tmp_path: Path, caplog) -> None:
    caplog.set_level("INFO")
    store = JsonIndexStore(tmp_path)
    controller = BatchSummarizer(
        _FakeSummarizer(failing={"/repo/b.ts"}),
        _FakeContextBuilder(),
        store,
        batch_size=1,
    )

    asyncio.run(controller.summarize_all(_index("/repo", ["a.ts", "b.ts"]), store.path_for("/repo")))

    progress = [
        record.getMessage()
        for record in caplog.records
        if record.getMessage().startswith("summary_batch_progress")
    ]
    assert len(progress) == 2
    assert "completed=2 total=2 failed=1 percent=100.00" in progress[-1]


def test_ph3_bat_008_summarize_store_processes_every_artifact(tmp_path: Path) -> None:
    store = JsonIndexStore(tmp_path)
    store.save(_index("/one", ["a.ts"]), store.path_for("/one"))
    store.save(_index("/two", ["b.ts"]), store.path_for("/two"))
    summarizer = _FakeSummarizer()

    results = asyncio.run(
        BatchSummarizer(summarizer, _FakeContextBuilder(), store).summarize_store()
    )

    assert [result.index_path.name for result in results] == ["ast-one.json", "ast-two.json"]
    assert sorted(summarizer.calls) == ["/one/a.ts", "/two/b.ts"]
    assert store.load(store.path_for("/two")).is_summarized("/two/b.ts")


def test_ph3_bat_009_batch_size_must_be_positive(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        BatchSummarizer(
            _FakeSummarizer(), _FakeContextBuilder(), JsonIndexStore(tmp_path), batch_size=0
        )


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_ph3_ctx_001_source_prompt_includes_local_dependencies(tmp_path: Path) -> None:
    root = str(tmp_path)
    _write_file(tmp_path / "util.ts", "export const util = 'UTIL_BODY';")
    record = SourceRecord(
        repository=root,
        file_name=f"{root}/main.ts",
        imports=(f"{root}/util.ts", "@angular/core"),
        source_code="import { util } from './util';",
        compiled_code="COMPILED_BODY",
    )
    index = AstIndex(repository=root, files=["main.ts"], codebase_info=[record])

    prompt = asyncio.run(ContextBuilder().build(index, f"{root}/main.ts"))

    assert f"File Name: {root}/main.ts" in prompt
    assert "import { util } from './util';" in prompt
    assert "UTIL_BODY" in prompt
    assert "COMPILED_BODY" in prompt


def test_ph3_ctx_002_template_prompt_includes_owning_components_and_styles(
    tmp_path: Path,
) -> None:
    root = str(tmp_path)
    _write_file(tmp_path / "app.html", "<p>TEMPLATE_BODY</p>")
    _write_file(tmp_path / "app.ts", "COMPONENT_BODY")
    _write_file(tmp_path / "app.scss", "STYLE_BODY")
    _write_file(tmp_path / "other.ts", "OTHER_BODY")
    component = SourceRecord(
        repository=root,
        file_name=f"{root}/app.ts",
        imports=(f"{root}/app.html", f"{root}/app.scss"),
    )
    other = SourceRecord(repository=root, file_name=f"{root}/other.ts")
    index = AstIndex(repository=root, codebase_info=[component, other])

    prompt = asyncio.run(ContextBuilder().build(index, f"{root}/app.html"))

    assert "TEMPLATE_BODY" in prompt
    assert "COMPONENT_BODY" in prompt
    assert "STYLE_BODY" in prompt
    assert "OTHER_BODY" not in prompt


def test_ph3_ctx_003_unreadable_config_file_uses_empty_content(
    tmp_path: Path, caplog
) -> None:
    caplog.set_level("WARNING")
    missing = str(tmp_path / "missing.yml")

    prompt = asyncio.run(ContextBuilder().build(AstIndex(repository=str(tmp_path)), missing))

    assert f"File Name: {missing}" in prompt
    assert "Not Applicable Here" in prompt
    assert any("File unreadable" in record.getMessage() for record in caplog.records)


def test_ph3_ctx_004_sibling_directory_sharing_prefix_is_not_local(
    tmp_path: Path,
) -> None:
    root = tmp_path / "app"
    _write_file(root / "util.ts", "LOCAL_BODY")
    _write_file(tmp_path / "app-lib/x.ts", "SIBLING_BODY")
    _write_file(root / "page.html", "<p>PAGE</p>")
    _write_file(tmp_path / "app-lib/theme.css", "SIBLING_STYLE")
    source = SourceRecord(
        repository=str(root),
        file_name=f"{root}/main.ts",
        imports=(f"{root}/util.ts", f"{tmp_path}/app-lib/x.ts"),
    )
    component = SourceRecord(
        repository=str(root),
        file_name=f"{root}/page.ts",
        imports=(f"{root}/page.html", f"{tmp_path}/app-lib/theme.css"),
    )
    index = AstIndex(repository=str(root), codebase_info=[source, component])

    source_prompt = asyncio.run(ContextBuilder().build(index, f"{root}/main.ts"))
    template_prompt = asyncio.run(ContextBuilder().build(index, f"{root}/page.html"))

    assert "LOCAL_BODY" in source_prompt
    assert "SIBLING_BODY" not in source_prompt
    assert "SIBLING_STYLE" not in template_prompt
