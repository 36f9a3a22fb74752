# Copyright The OpenTelemetry Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
AWS X-Ray IDs Generator
-----------------------

Trace ids written by the `AwsXRayPropagator` are split into an 8 hex digit
epoch timestamp and a 24 hex digit random part. The X-Ray backend rejects
segments whose timestamp is more than 30 days old, so purely random trace ids
produced by the default SDK generator risk being dropped.

``AwsXRayIdGenerator`` produces `trace ID format`_ compatible ids. It requires
the OpenTelemetry SDK:

::

    pip install opentelemetry-sdk

.. code-block:: python

    import opentelemetry.trace as trace
    from opentelemetry.propagators.aws.aws_xray_id_generator import (
        AwsXRayIdGenerator,
    )
    from opentelemetry.sdk.trace import TracerProvider

    trace.set_tracer_provider(
        TracerProvider(id_generator=AwsXRayIdGenerator())
    )

or, with auto-instrumentation, ``export OTEL_PYTHON_ID_GENERATOR=xray``.

.. _trace ID format: https://docs.aws.amazon.com/xray/latest/devguide/xray-api-sendingdata.html#xray-api-traceids
"""

import random
import time

from opentelemetry.sdk.trace.id_generator import IdGenerator, RandomIdGenerator

TRACE_ID_TIMESTAMP_BITS = 32
TRACE_ID_RANDOM_BITS = 96


class AwsXRayIdGenerator(IdGenerator):
    """Generates trace ids whose high 32 bits hold the Unix epoch time in
    seconds, followed by 96 random bits. Span ids are fully random."""

    _span_id_generator = RandomIdGenerator()

    def generate_span_id(self) -> int:
        return self._span_id_generator.generate_span_id()

    def generate_trace_id(self) -> int:
        timestamp = int(time.time()) & ((1 << TRACE_ID_TIMESTAMP_BITS) - 1)
        return (timestamp << TRACE_ID_RANDOM_BITS) | random.getrandbits(
            TRACE_ID_RANDOM_BITS
        )
