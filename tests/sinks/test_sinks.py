from __future__ import annotations

from pathlib import Path

import pytest
from kafka.errors import KafkaError

from vacancy_watch.config import EmailSinkConfig, KafkaSinkConfig
from vacancy_watch.errors import SinkError
from vacancy_watch.sinks import EmailSink, FileSink, KafkaSink, build_sinks


class StubFuture:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.timeout = None

    def get(self, timeout=None):  # noqa: ANN001
        self.timeout = timeout
        if self.error is not None:
            raise self.error
        return "metadata"


class StubProducer:
    instances: list["StubProducer"] = []
    fail_with: Exception | None = None

    def __init__(self, **kwargs) -> None:  # noqa: ANN003
        self.kwargs = kwargs
        self.sent: list[tuple[str, bytes, bytes]] = []
        self.closed = False
        StubProducer.instances.append(self)

    def send(self, topic, key=None, value=None):  # noqa: ANN001
        self.sent.append((topic, key, value))
        return StubFuture(StubProducer.fail_with)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def stub_producer(monkeypatch: pytest.MonkeyPatch) -> type[StubProducer]:
    StubProducer.instances = []
    StubProducer.fail_with = None
    monkeypatch.setattr("vacancy_watch.sinks.kafka_sink.KafkaProducer", StubProducer)
    return StubProducer


def test_kafka_sink_publishes_digest(stub_producer) -> None:
    sink = KafkaSink(KafkaSinkConfig(enabled=True, brokers=["k1:9092"], topic="jobs", key="job"))
    sink.deliver("New Job Postings (1)", "🔹 Go Dev")
    sink.deliver("New Job Postings (1)", "🔹 Rust Dev")

    assert len(stub_producer.instances) == 1
    producer = stub_producer.instances[0]
    assert producer.kwargs["bootstrap_servers"] == ["k1:9092"]
    assert producer.sent == [
        ("jobs", b"job", "🔹 Go Dev".encode("utf-8")),
        ("jobs", b"job", "🔹 Rust Dev".encode("utf-8")),
    ]
    sink.close()
    assert producer.closed


def test_kafka_sink_maps_broker_errors(stub_producer) -> None:
    stub_producer.fail_with = KafkaError("leader not available")
    sink = KafkaSink(KafkaSinkConfig(enabled=True))
    with pytest.raises(SinkError) as excinfo:
        sink.deliver("subject", "body")
    assert excinfo.value.sink == "kafka"
    assert "job_notifications" in str(excinfo.value)


class StubSMTP:
    instances: list["StubSMTP"] = []
    fail_on_send = False

    def __init__(self, host, port, timeout=None) -> None:  # noqa: ANN001
        self.host = host
        self.port = port
        self.timeout = timeout
        self.actions: list[str] = []
        self.messages = []
        StubSMTP.instances.append(self)

    def __enter__(self) -> "StubSMTP":
        return self

    def __exit__(self, *exc_info) -> None:  # noqa: ANN002
        self.actions.append("quit")

    def starttls(self) -> None:
        self.actions.append("starttls")

    def login(self, user, password) -> None:  # noqa: ANN001
        self.actions.append(f"login:{user}:{password}")

    def send_message(self, message) -> None:  # noqa: ANN001
        if StubSMTP.fail_on_send:
            raise ConnectionRefusedError("connection refused")
        self.messages.append(message)


@pytest.fixture
def stub_smtp(monkeypatch: pytest.MonkeyPatch) -> type[StubSMTP]:
    StubSMTP.instances = []
    StubSMTP.fail_on_send = False
    monkeypatch.setattr("vacancy_watch.sinks.email_sink.smtplib.SMTP", StubSMTP)
    return StubSMTP


def _email_config(**overrides) -> EmailSinkConfig:  # noqa: ANN003
    payload = {
        "enabled": True,
        "host": "smtp.example.com",
        "port": 2525,
        "username": "robot",
        "password": "secret",
        "sender": "bot@example.com",
        "recipients": ["ops@example.com", "dev@example.com"],
    }
    payload.update(overrides)
    return EmailSinkConfig(**payload)


def test_email_sink_sends_message(stub_smtp) -> None:
    sink = EmailSink(_email_config())
    sink.deliver("New Job Postings (2)", "🔹 Go Dev\n📎 https://example.com/1\n🕒 now")

    server = stub_smtp.instances[0]
    assert (server.host, server.port) == ("smtp.example.com", 2525)
    assert server.actions == ["starttls", "login:robot:secret", "quit"]
    message = server.messages[0]
    assert message["Subject"] == "New Job Postings (2)"
    assert message["From"] == "bot@example.com"
    assert message["To"] == "ops@example.com, dev@example.com"
    assert "🔹 Go Dev" in message.get_content()


def test_email_sink_without_tls_or_login(stub_smtp) -> None:
    EmailSink(_email_config(use_tls=False, username="")).deliver("s", "b")
    assert stub_smtp.instances[0].actions == ["quit"]


def test_email_sink_maps_smtp_errors(stub_smtp) -> None:
    stub_smtp.fail_on_send = True
    with pytest.raises(SinkError) as excinfo:
        EmailSink(_email_config()).deliver("s", "b")
    assert excinfo.value.sink == "email"


def test_file_sink_appends_blocks(tmp_path: Path) -> None:
    sink = FileSink(tmp_path / "out", "digests.txt")
    sink.deliver("New Job Postings (1)", "🔹 First\n")
    sink.deliver("New Job Postings (1)", "🔹 Second")

    text = (tmp_path / "out" / "digests.txt").read_text(encoding="utf-8")
    assert text.count("=== New Job Postings (1) · ") == 2
    assert text.index("🔹 First") < text.index("🔹 Second")
    assert text.endswith("🔹 Second\n\n")


def test_file_sink_reports_unwritable_target(tmp_path: Path) -> None:
    blocker = tmp_path / "occupied"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(SinkError):
        FileSink(blocker, "digests.txt").deliver("s", "b")


def test_build_sinks_follows_config(sample_config, tmp_path: Path) -> None:
    assert build_sinks(sample_config(), tmp_path) == []
    config = sample_config(
        sinks={
            "kafka": {"enabled": True},
            "email": {
                "enabled": True,
                "host": "smtp.example.com",
                "sender": "bot@example.com",
                "recipients": "ops@example.com",
            },
            "file": {"enabled": True, "filename": "out.txt"},
        }
    )
    sinks = build_sinks(config, tmp_path)
    assert [sink.name for sink in sinks] == ["kafka", "email", "file"]
    assert sinks[2].path == tmp_path / "out.txt"
