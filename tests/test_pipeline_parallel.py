"""
Unit tests for ParallelIngestionPipeline (thread pool processing).

Tests that parallel runs are indistinguishable from sequential ones:
same records, same order, same issues.
"""

import threading
import time

import pytest

from nfse_splitter.api import IngestionPipeline, ParallelIngestionPipeline, PipelineState
from nfse_splitter.config import ClassificationConfig
from nfse_splitter.exceptions import ConfigurationError
from nfse_splitter.models import InputFile
from nfse_splitter.parsers import RegexTagLookup


class SlowFirstFileLookup(RegexTagLookup):
    """Delays notes from the first file so it finishes last."""

    def __init__(self):
        self.thread_names = set()

    def find_first(self, text, tag_name):
        self.thread_names.add(threading.current_thread().name)
        if "<Numero>100</Numero>" in text:
            time.sleep(0.2)
        return super().find_first(text, tag_name)


@pytest.fixture
def batch(note, document, zip_bytes):
    """Mixed batch: plain XML, an archive, an empty file and a corrupt archive."""
    return [
        InputFile(name="lote1.xml", data=document(note(numero="100", value="1"), note(numero="101", value="2")).encode("utf-8")),
        InputFile(name="lote2.zip", data=zip_bytes({
            "m1.xml": document(note(numero="200", value="2")).encode("utf-8"),
            "m2.xml": document(note(numero="201", value="9")).encode("utf-8"),
        })),
        InputFile(name="vazio.xml", data=b"<ConsultarNfseResposta/>"),
        InputFile(name="quebrado.zip", data=b"not a zip"),
        InputFile(name="lote3.xml", data=document(note(numero="300", value=None)).encode("utf-8")),
    ]


@pytest.mark.unit
class TestParallelIngestionPipeline:
    """Tests for ParallelIngestionPipeline.run()."""

    def test_matches_sequential_result(self, batch):
        """Parallel and sequential runs produce identical results."""
        config = ClassificationConfig()

        sequential = IngestionPipeline().run(batch, config=config)
        parallel = ParallelIngestionPipeline(max_workers=4).run(batch, config=config)

        assert parallel == sequential
        assert [r.identifier for r in parallel.records] == ["100", "101", "200", "201", "300"]
        assert [i.file_name for i in parallel.issues] == ["vazio.xml", "quebrado.zip"]

    def test_output_in_input_order_not_completion_order(self, note, document):
        lookup = SlowFirstFileLookup()
        files = [
            InputFile(name=f"lote{n}.xml", data=document(note(numero=str(n))).encode("utf-8"))
            for n in (100, 2, 3, 4)
        ]

        result = ParallelIngestionPipeline(lookup=lookup, max_workers=4).run(files)

        assert [r.identifier for r in result.records] == ["100", "2", "3", "4"]

    def test_uses_worker_threads(self, note, document):
        lookup = SlowFirstFileLookup()
        files = [
            InputFile(name=f"lote{n}.xml", data=document(note(numero=str(n))).encode("utf-8"))
            for n in range(6)
        ]

        ParallelIngestionPipeline(lookup=lookup, max_workers=3).run(files)

        assert threading.main_thread().name not in lookup.thread_names

    def test_commits_to_store(self, batch):
        pipeline = ParallelIngestionPipeline(max_workers=2)

        pipeline.run(batch)

        assert [r.identifier for r in pipeline.store.tomador] == ["100"]
        assert [r.identifier for r in pipeline.store.prestador] == ["101", "200"]
        assert [r.identifier for r in pipeline.store.sem_categoria] == ["201", "300"]
        assert pipeline.state is PipelineState.COMPLETED

    def test_only_issues_batch(self):
        """A batch with nothing to process skips the pool entirely."""
        result = ParallelIngestionPipeline(max_workers=2).run([InputFile(name="x.zip", data=b"bad")])

        assert result.total_records == 0
        assert result.files_processed == 0
        assert [i.kind for i in result.issues] == ["ArchiveReadError"]

    def test_invalid_config_raises_before_processing(self, batch):
        pipeline = ParallelIngestionPipeline(max_workers=2)

        with pytest.raises(ConfigurationError):
            pipeline.run(batch, config=ClassificationConfig(tag_name=""))

        assert pipeline.state is PipelineState.IDLE


@pytest.mark.unit
class TestParallelPipelineWorkers:
    """Tests for worker count configuration."""

    @pytest.mark.parametrize("max_workers", [0, -2, 65])
    def test_invalid_worker_count_rejected(self, max_workers):
        with pytest.raises(ValueError, match="max_workers"):
            ParallelIngestionPipeline(max_workers=max_workers)

    def test_default_from_app_config(self, monkeypatch):
        monkeypatch.setenv("NFSE_MAX_WORKERS", "6")

        assert ParallelIngestionPipeline().max_workers == 6

    def test_is_an_ingestion_pipeline(self):
        assert isinstance(ParallelIngestionPipeline(max_workers=1), IngestionPipeline)
