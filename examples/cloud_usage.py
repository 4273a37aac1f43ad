"""
Trace with Cloud Trace, Cloud Logging and Error Reporting.

Requires the ``gcp`` extra and Application Default Credentials:

  pip install -e ".[gcp]"
  GOOGLE_CLOUD_PROJECT=my-project python cloud_usage.py --sample-rate 0.5
"""
from __future__ import annotations

import argparse
import logging

from opentracing_stackdriver import LogField, TracerBuilder, TracerConfig

logger = logging.getLogger("cloud_usage")


def main() -> None:
    ap = argparse.ArgumentParser(description="Send spans to Google Cloud")
    ap.add_argument("--project", help="Google Cloud project (defaults to GOOGLE_CLOUD_PROJECT)")
    ap.add_argument("--sample-rate", type=float, default=None,
                    help="Fraction of traces exported to Cloud Trace")
    ap.add_argument("--requests", type=int, default=5, help="Number of traced requests")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO)

    builder = TracerBuilder(TracerConfig.from_env())
    if args.project:
        builder.project_id(args.project)

    tracer = (
        builder
        .service("cloud-usage-example", version="0.1.0")
        .with_cloud_logging()
        .with_cloud_trace(sample_rate=args.sample_rate)
        .with_error_reporting()
        .build()
    )

    for i in range(args.requests):
        with tracer.start_active_span("request") as scope:
            scope.span.set_tag("request.index", i)
            with tracer.start_active_span("query") as child:
                child.span.log_kv({"event": "query", "rows": i * 10})
            if i == args.requests - 1:
                try:
                    raise ValueError(f"request {i} failed validation")
                except ValueError as e:
                    scope.span.log_fields(LogField.error(e))
            logger.info(f"Finished request {i} in trace {scope.span.trace_id}")

    tracer.close()


if __name__ == "__main__":
    main()
