from pathlib import Path

from durable_breaker.settings import BreakerSettings
from durable_breaker.storage import (
    DefaultCircuitStateRepository,
    FallbackStorageAdapter,
    FileStorageAdapter,
    InMemoryStorageAdapter,
    StorageBuilder,
    create_repository,
)
from durable_breaker.storage.decorators import (
    InMemoryStorageMetricsCollector,
    LoggingStorageDecorator,
    RetryStorageDecorator,
)
from tests.durable_breaker.support.fakes import FakeLogger


def test_decorators_wrap_in_insertion_order(fake_logger: FakeLogger) -> None:
    memory = InMemoryStorageAdapter()

    adapter = StorageBuilder(memory).with_retry().with_logging(fake_logger).build()

    assert isinstance(adapter, LoggingStorageDecorator)
    assert isinstance(adapter.inner_adapter, RetryStorageDecorator)
    assert adapter.root_adapter is memory
    assert adapter.name == "logging(retry(memory))"


def test_build_without_decorators_returns_adapter() -> None:
    memory = InMemoryStorageAdapter()

    assert StorageBuilder(memory).build() is memory


def test_build_repository_uses_built_chain() -> None:
    collector = InMemoryStorageMetricsCollector()

    repository = (
        StorageBuilder(InMemoryStorageAdapter())
        .with_metrics(collector)
        .build_repository(ttl=30)
    )

    assert isinstance(repository, DefaultCircuitStateRepository)
    assert repository.adapter.name == "metrics(memory)"


def test_from_settings_without_directory_uses_memory(
    fake_logger: FakeLogger,
) -> None:
    settings = BreakerSettings(storage_dir=None)

    adapter = StorageBuilder.from_settings(settings, logger=fake_logger).build()

    assert adapter.name == "logging(memory)"


def test_from_settings_with_directory_builds_file_fallback_chain(
    tmp_path: Path,
    fake_logger: FakeLogger,
) -> None:
    settings = BreakerSettings(storage_dir=tmp_path, retry_max_attempts=2)
    collector = InMemoryStorageMetricsCollector()

    adapter = StorageBuilder.from_settings(
        settings, logger=fake_logger, collector=collector
    ).build()

    assert adapter.name == "logging(metrics(fallback(retry(file),memory)))"
    fallback = adapter.root_adapter
    assert isinstance(fallback, FallbackStorageAdapter)
    primary = fallback.adapters[0]
    assert isinstance(primary, RetryStorageDecorator)
    assert primary.policy.max_attempts == 2
    assert isinstance(primary.root_adapter, FileStorageAdapter)
    assert primary.root_adapter.directory == tmp_path


def test_create_repository_shortcuts(tmp_path: Path) -> None:
    in_memory = create_repository()
    on_disk = create_repository(tmp_path)

    assert isinstance(in_memory, DefaultCircuitStateRepository)
    assert isinstance(on_disk, DefaultCircuitStateRepository)
    assert in_memory.adapter.name == "logging(memory)"
    assert on_disk.adapter.name == "logging(retry(file))"
