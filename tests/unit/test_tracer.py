"""
Unit tests for the tracer: span creation, lineage, propagation and pooling.
"""

import threading

import opentracing
import pytest
from opentracing import Format, SpanContextCorruptedException, UnsupportedFormatException

from opentracing_stackdriver import (
    LogField,
    SpanContext,
    SpanPool,
    Span,
    Tracer,
    TracerBuilder,
)
from opentracing_stackdriver.backends.utils import TRACE_CONTEXT_HEADER

from conftest import FakeTraceBackend, RecordingErrorReporter, RecordingLogger


class TestStartSpan:
    """Test cases for creating root and child spans."""

    def test_root_span(self, tracer):
        span = tracer.start_span("root")

        assert isinstance(span, opentracing.Span)
        assert span.tracer is tracer
        assert span.operation_name == "root"
        assert len(span.trace_id) == 32
        assert len(span.span_id) == 16
        assert span.parent_span_id is None

    def test_initial_tags(self, tracer):
        span = tracer.start_span("op", tags={"component": "db", "rows": 12})

        assert dict(span.tags) == {"component": "db", "rows": "12"}

    def test_child_of_span(self, tracer):
        parent = tracer.start_span("parent")
        child = tracer.start_span("child", child_of=parent)

        assert child.trace_id == parent.trace_id
        assert child.parent_span_id == parent.span_id
        assert child.span_id != parent.span_id

    def test_child_of_context(self, tracer):
        parent = tracer.start_span("parent")
        child = tracer.start_span("child", child_of=parent.context)

        assert child.trace_id == parent.trace_id
        assert child.parent_span_id == parent.span_id

    def test_follows_from_reference(self, tracer):
        parent = tracer.start_span("parent")
        child = tracer.start_span("child", references=[opentracing.follows_from(parent.context)])

        assert child.trace_id == parent.trace_id

    def test_child_of_reference_wins(self, tracer):
        first = tracer.start_span("first")
        second = tracer.start_span("second")
        child = tracer.start_span("child", references=[
            opentracing.follows_from(first.context),
            opentracing.child_of(second.context),
        ])

        assert child.trace_id == second.trace_id

    def test_foreign_context_starts_new_trace(self, tracer):
        span = tracer.start_span("op", child_of=opentracing.SpanContext())

        assert span.parent_span_id is None

    def test_children_inherit_sampling(self, traced_tracer, trace_backend):
        trace_backend.sample = False
        parent = traced_tracer.start_span("parent")
        trace_backend.sample = True
        child = traced_tracer.start_span("child", child_of=parent)

        assert not parent.sampled
        assert not child.sampled

    def test_backend_failure_degrades_to_logging(self, recording_logger):
        class BrokenBackend(FakeTraceBackend):
            def start_span(self, *args, **kwargs):
                raise RuntimeError("unavailable")

        tracer = Tracer(log_sink=recording_logger, trace_backend=BrokenBackend())
        span = tracer.start_span("op")
        span.set_tag("k", "v")
        span.finish()

        assert recording_logger.entries[0].payload["message"] == "op"


class TestActiveSpan:
    """Test cases for scope management."""

    def test_active_span_is_implicit_parent(self, tracer):
        with tracer.start_active_span("parent") as scope:
            assert tracer.active_span is scope.span
            child = tracer.start_span("child")
            assert child.trace_id == scope.span.trace_id
            assert child.parent_span_id == scope.span.span_id
            child.finish()

        assert tracer.active_span is None

    def test_ignore_active_span(self, tracer):
        with tracer.start_active_span("parent") as scope:
            other = tracer.start_span("other", ignore_active_span=True)
            assert other.trace_id != scope.span.trace_id
            other.finish()

    def test_scope_finishes_span(self, tracer, recording_logger):
        with tracer.start_active_span("op"):
            pass

        assert [entry.payload["message"] for entry in recording_logger.entries] == ["op"]

    def test_scope_without_finish_on_close(self, tracer, recording_logger):
        with tracer.start_active_span("op", finish_on_close=False) as scope:
            span = scope.span

        assert recording_logger.entries == []
        span.finish()
        assert len(recording_logger.entries) == 1


class TestBaggagePropagation:
    """Test cases for baggage flowing from parents to children."""

    def test_builder_baggage_reaches_every_span(self):
        calls = []
        tracer = TracerBuilder().logger_func(calls.append).set_baggage_item("hello", "world").build()

        a = tracer.start_span("a")
        b = tracer.start_span("b", child_of=a.context)
        b.finish()
        a.finish()

        assert len(calls) == 2
        assert all(entry.labels == {"hello": "world"} for entry in calls)

    def test_span_baggage_reaches_child_finish_record(self, tracer, recording_logger):
        parent = tracer.start_span("parent")
        parent.set_baggage_item("hello", "world")
        child = tracer.start_span("child", child_of=parent)

        assert child.get_baggage_item("hello") == "world"
        child.finish()
        assert recording_logger.entries[0].labels == {"hello": "world"}

    def test_child_baggage_does_not_flow_up(self, tracer):
        parent = tracer.start_span("parent")
        child = tracer.start_span("child", child_of=parent)
        child.set_baggage_item("child", "only")

        assert parent.get_baggage_item("child") is None

    def test_tags_do_not_propagate(self, tracer):
        parent = tracer.start_span("parent")
        parent.set_tag("component", "db")
        child = tracer.start_span("child", child_of=parent)

        assert dict(child.tags) == {}


class TestErrorReporting:
    """Test cases for at-most-once error reporting per trace lineage."""

    def test_same_lineage_reports_once(self, tracer, error_reporter):
        root = tracer.start_span("root")
        child = tracer.start_span("child", child_of=root)
        grandchild = tracer.start_span("grandchild", child_of=child)

        for span in (root, child, grandchild):
            span.log_fields(LogField.error(ValueError("boom")))

        assert len(error_reporter.errors) == 1

    def test_separate_traces_report_separately(self, tracer, error_reporter):
        for name in ("first", "second"):
            span = tracer.start_span(name)
            span.log_fields(LogField.error(ValueError(name)))
            span.finish()

        assert [str(error) for error in error_reporter.errors] == ["first", "second"]

    def test_concurrent_children_report_once(self, tracer, error_reporter):
        root = tracer.start_span("root")
        context = root.context
        barrier = threading.Barrier(16)

        def work():
            span = tracer.start_span("worker", child_of=context)
            barrier.wait()
            span.log_kv({"error.object": RuntimeError("worker failed")})
            span.finish()

        threads = [threading.Thread(target=work) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(error_reporter.errors) == 1

    def test_no_reporter_configured(self, recording_logger):
        tracer = Tracer(log_sink=recording_logger)
        span = tracer.start_span("op")
        span.log_fields(LogField.error(ValueError("boom")))

        assert recording_logger.entries[0].severity == "ERROR"

    def test_failing_reporter_does_not_raise(self, recording_logger):
        class BrokenReporter(RecordingErrorReporter):
            def report(self, error):
                raise ConnectionError("reporting down")

        tracer = Tracer(log_sink=recording_logger, error_reporter=BrokenReporter())
        span = tracer.start_span("op")
        span.log_fields(LogField.error(ValueError("boom")))

        assert len(recording_logger.entries) == 1

    def test_failing_sink_does_not_raise(self):
        class BrokenLogger(RecordingLogger):
            def log(self, entry):
                raise ConnectionError("logging down")

        tracer = Tracer(log_sink=BrokenLogger())
        span = tracer.start_span("op")
        span.log_kv({"event": "x"})
        span.finish()


class TestPooling:
    """Test cases for span reuse through the tracer's pool."""

    def test_finished_span_is_reused_clean(self, recording_logger):
        pool = SpanPool(Span, max_size=1)
        tracer = Tracer(log_sink=recording_logger, span_pool=pool)

        first = tracer.start_span("first")
        first.set_tag("secret", "tag")
        first.set_baggage_item("secret", "baggage")
        first.finish()
        assert len(pool) == 1

        second = tracer.start_span("second")
        assert second is first
        assert dict(second.tags) == {}
        assert second.get_baggage_item("secret") is None
        assert second.status_code is None
        assert second.operation_name == "second"

        second.finish()
        assert recording_logger.entries[-1].labels == {}

    def test_context_snapshot_outlives_reuse(self, tracer):
        first = tracer.start_span("first")
        first.set_baggage_item("k", "v")
        context = first.context
        first.finish()
        tracer.start_span("second")

        assert context.baggage == {"k": "v"}


class TestPropagation:
    """Test cases for inject and extract."""

    def test_text_map_round_trip(self, tracer):
        span = tracer.start_span("op")
        span.set_baggage_item("user", "42")
        carrier = {}
        tracer.inject(span.context, Format.TEXT_MAP, carrier)

        context = tracer.extract(Format.TEXT_MAP, carrier)
        assert isinstance(context, SpanContext)
        assert context.trace_id == span.trace_id
        assert context.span_id == span.span_id
        assert context.baggage == {"user": "42"}

    def test_inject_accepts_span(self, tracer):
        span = tracer.start_span("op")
        carrier = {}
        tracer.inject(span, Format.HTTP_HEADERS, carrier)

        assert carrier[TRACE_CONTEXT_HEADER].startswith(span.trace_id + "/")

    def test_http_headers_encode_baggage(self, tracer):
        span = tracer.start_span("op")
        span.set_baggage_item("note", "hello world")
        carrier = {}
        tracer.inject(span.context, Format.HTTP_HEADERS, carrier)

        assert carrier["ot-baggage-note"] == "hello%20world"
        assert tracer.extract(Format.HTTP_HEADERS, carrier).baggage == {"note": "hello world"}

    def test_sampling_decision_propagates(self, traced_tracer):
        span = traced_tracer.start_span("op")
        carrier = {}
        traced_tracer.inject(span.context, Format.HTTP_HEADERS, carrier)

        assert carrier[TRACE_CONTEXT_HEADER].endswith(";o=1")
        assert traced_tracer.extract(Format.HTTP_HEADERS, carrier).sampled is True

    def test_extracted_context_as_parent(self, tracer):
        headers = {"x-cloud-trace-context": "105445aa7843bc8bf206b12000100000/1;o=1"}
        context = tracer.extract(Format.HTTP_HEADERS, headers)
        span = tracer.start_span("server", child_of=context)

        assert span.trace_id == "105445aa7843bc8bf206b12000100000"
        assert span.parent_span_id == "0000000000000001"

    def test_extract_without_context(self, tracer):
        assert tracer.extract(Format.TEXT_MAP, {"ot-baggage-user": "42"}) is None

    def test_extract_corrupted_context(self, tracer):
        with pytest.raises(SpanContextCorruptedException):
            tracer.extract(Format.TEXT_MAP, {TRACE_CONTEXT_HEADER: "not-a-trace"})

    def test_binary_is_unsupported(self, tracer):
        span = tracer.start_span("op")
        with pytest.raises(UnsupportedFormatException):
            tracer.inject(span.context, Format.BINARY, bytearray())
        with pytest.raises(UnsupportedFormatException):
            tracer.extract(Format.BINARY, bytearray())


class TestClose:
    def test_close_closes_collaborators(self, traced_tracer, recording_logger, trace_backend):
        traced_tracer.close()

        assert recording_logger.closed
        assert trace_backend.closed
