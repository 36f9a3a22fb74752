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

from requests.structures import CaseInsensitiveDict

from opentelemetry.propagators.aws.aws_xray_propagator import (
    TRACE_HEADER_KEY,
    AwsXRayPropagator,
    extract_span_context,
    inject_span_context,
)
from opentelemetry.trace import SpanContext, TraceFlags

XRAY_PROPAGATOR = AwsXRayPropagator()

SPAN_CONTEXT = SpanContext(
    trace_id=int("5759e988bd862e3fe1be46a994272793", 16),
    span_id=int("53995c3f42cd8ad8", 16),
    is_remote=False,
    trace_flags=TraceFlags(TraceFlags.SAMPLED),
)


def test_extract_single_header(benchmark):
    benchmark(
        XRAY_PROPAGATOR.extract,
        {
            TRACE_HEADER_KEY: "Root=1-5759e988-bd862e3fe1be46a994272793;Parent=53995c3f42cd8ad8;Sampled=1"
        },
    )


def test_extract_malformed_header(benchmark):
    benchmark(
        extract_span_context,
        {
            TRACE_HEADER_KEY: "bdb5b63237ed38aea578af665aa5aa60-00000000000000000c32d953d73ad225"
        },
    )


def test_inject_empty_context(benchmark):
    benchmark(XRAY_PROPAGATOR.inject, CaseInsensitiveDict())


def test_inject_valid_span_context(benchmark):
    carrier = {}

    benchmark(inject_span_context, SPAN_CONTEXT, carrier)

    assert carrier == {
        TRACE_HEADER_KEY: "Root=1-5759e988-bd862e3fe1be46a994272793;Parent=53995c3f42cd8ad8;Sampled=1"
    }
