"""
Trace a small request flow without any Google Cloud services.

Every span is written to a standard library logger on finish, so this runs
anywhere:

  python basic_usage.py
  python basic_usage.py --fail
"""
from __future__ import annotations

import argparse
import logging
import time

from opentracing import Format

from opentracing_stackdriver import LogField, TracerBuilder

logger = logging.getLogger("basic_usage")


def handle_request(tracer, headers, fail: bool) -> None:
    """Continue the caller's trace and do some traced work."""
    parent = tracer.extract(Format.HTTP_HEADERS, headers)
    with tracer.start_active_span("handle-request", child_of=parent) as scope:
        scope.span.set_tag("http.method", "GET")
        scope.span.set_tag("http.status_code", 200)

        with tracer.start_active_span("load-cart") as child:
            time.sleep(0.01)
            child.span.log_fields(
                LogField.event("cache miss"),
                LogField.integer("items", 3),
            )

        if fail:
            try:
                raise TimeoutError("payment provider did not answer")
            except TimeoutError as e:
                scope.span.log_fields(LogField.error(e))


def main() -> None:
    ap = argparse.ArgumentParser(description="Trace a request using a stdlib logger sink")
    ap.add_argument("--fail", action="store_true", help="Log an error on the request span")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    tracer = (
        TracerBuilder()
        .logger(logging.getLogger("spans"))
        .set_baggage_item("service", "checkout")
        .build()
    )

    # the client side of the call
    client = tracer.start_span("call-checkout")
    headers = {}
    tracer.inject(client.context, Format.HTTP_HEADERS, headers)
    logger.info(f"Outgoing headers: {headers}")

    handle_request(tracer, headers, args.fail)
    client.finish()
    tracer.close()


if __name__ == "__main__":
    main()
