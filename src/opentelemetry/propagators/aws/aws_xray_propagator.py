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
AWS X-Ray Propagator
--------------------

The **AWS X-Ray Propagator** reads and writes the ``X-Amzn-Trace-Id``
`trace header`_ used by the AWS X-Ray backend service, so that trace context
survives a hop through AWS services.

Outgoing requests get a header of the form::

    Root=1-5759e988-bd862e3fe1be46a994272793;Parent=53995c3f42cd8ad8;Sampled=1

Incoming headers are parsed back into a remote ``SpanContext``. Fields may
appear in any order and unknown fields are ignored, but a malformed ``Root``
or ``Parent`` field, or an empty ``Sampled`` field, discards the whole header
and yields ``INVALID_SPAN_CONTEXT``.

**NOTE**: Only ``Sampled=1`` marks the extracted context as sampled. Any
other non-empty value is read as "not sampled".

Usage
-----

Select the propagator with the environment variable:

::

    export OTEL_PROPAGATORS=xray


Or set it in your instrumented application:

.. code-block:: python

    from opentelemetry.propagate import set_global_textmap
    from opentelemetry.propagators.aws import AwsXRayPropagator

    set_global_textmap(AwsXRayPropagator())

The codec is also usable without the global propagation machinery:

.. code-block:: python

    from opentelemetry.propagators.aws import (
        extract_span_context,
        inject_span_context,
    )

    headers = {}
    inject_span_context(span.get_span_context(), headers)
    span_context = extract_span_context(headers)

API
---
.. _trace header: https://docs.aws.amazon.com/xray/latest/devguide/xray-concepts.html#xray-concepts-tracingheader
"""

import logging
import typing
from re import compile as re_compile

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.propagators.textmap import (
    CarrierT,
    Getter,
    Setter,
    TextMapPropagator,
    default_getter,
    default_setter,
)

TRACE_HEADER_KEY = "X-Amzn-Trace-Id"
KV_PAIR_DELIMITER = ";"
KEY_AND_VALUE_DELIMITER = "="

TRACE_ID_KEY = "Root"
TRACE_ID_VERSION = "1"
TRACE_ID_DELIMITER = "-"
TRACE_ID_PART_COUNT = 3
TRACE_ID_FIRST_PART_LENGTH = 8
TRACE_ID_SECOND_PART_LENGTH = 24

PARENT_ID_KEY = "Parent"
PARENT_ID_LENGTH = 16

SAMPLED_FLAG_KEY = "Sampled"
IS_SAMPLED = "1"
NOT_SAMPLED = "0"

_valid_trace_id_first_part = re_compile(
    r"[0-9a-fA-F]{%d}" % TRACE_ID_FIRST_PART_LENGTH
)
_valid_trace_id_second_part = re_compile(
    r"[0-9a-fA-F]{%d}" % TRACE_ID_SECOND_PART_LENGTH
)
_valid_parent_id = re_compile(r"[0-9a-fA-F]{%d}" % PARENT_ID_LENGTH)

_logger = logging.getLogger(__name__)


def fields() -> typing.List[str]:
    """Returns the carrier keys read by `extract_span_context` and written
    by `inject_span_context`."""
    return [TRACE_HEADER_KEY]


def extract_span_context(
    carrier: CarrierT, getter: Getter = default_getter
) -> trace.SpanContext:
    """Parses the X-Ray trace header found in ``carrier``.

    Returns a remote ``SpanContext`` when the header carries a valid
    ``Root``, ``Parent`` and ``Sampled`` field, and
    ``opentelemetry.trace.INVALID_SPAN_CONTEXT`` otherwise. Never raises on
    malformed input.
    """
    trace_header_list = getter.get(carrier, TRACE_HEADER_KEY)

    if not trace_header_list or len(trace_header_list) != 1:
        return trace.INVALID_SPAN_CONTEXT

    trace_header = trace_header_list[0]

    if not trace_header or not trace_header.strip():
        return trace.INVALID_SPAN_CONTEXT

    header_fields = _split_trace_header(trace_header)

    trace_id = _parse_trace_id(header_fields.get(TRACE_ID_KEY))
    if trace_id is None:
        _logger.debug(
            "Invalid TraceId in X-Ray trace header: '%s' with value '%s'. "
            "Returning INVALID span context.",
            TRACE_HEADER_KEY,
            trace_header,
        )
        return trace.INVALID_SPAN_CONTEXT

    span_id = _parse_span_id(header_fields.get(PARENT_ID_KEY))
    if span_id is None:
        _logger.debug(
            "Invalid ParentId in X-Ray trace header: '%s' with value '%s'. "
            "Returning INVALID span context.",
            TRACE_HEADER_KEY,
            trace_header,
        )
        return trace.INVALID_SPAN_CONTEXT

    sampled = _parse_sampled_flag(header_fields.get(SAMPLED_FLAG_KEY))
    if sampled is None:
        _logger.debug(
            "Missing Sampling flag in X-Ray trace header: '%s' with value "
            "'%s'. Returning INVALID span context.",
            TRACE_HEADER_KEY,
            trace_header,
        )
        return trace.INVALID_SPAN_CONTEXT

    return trace.SpanContext(
        trace_id=trace_id,
        span_id=span_id,
        is_remote=True,
        trace_flags=trace.TraceFlags(
            trace.TraceFlags.SAMPLED if sampled else trace.TraceFlags.DEFAULT
        ),
        trace_state=trace.TraceState(),
    )


def to_trace_header(span_context: trace.SpanContext) -> str:
    """Renders ``span_context`` as an ``X-Amzn-Trace-Id`` header value."""
    otel_trace_id = f"{span_context.trace_id:032x}"
    xray_trace_id = TRACE_ID_DELIMITER.join(
        [
            TRACE_ID_VERSION,
            otel_trace_id[:TRACE_ID_FIRST_PART_LENGTH],
            otel_trace_id[TRACE_ID_FIRST_PART_LENGTH:],
        ]
    )

    parent_id = f"{span_context.span_id:016x}"

    sampling_flag = (
        IS_SAMPLED if span_context.trace_flags.sampled else NOT_SAMPLED
    )

    # trace state has no representation in the X-Ray header
    return KV_PAIR_DELIMITER.join(
        [
            KEY_AND_VALUE_DELIMITER.join([key, value])
            for key, value in [
                (TRACE_ID_KEY, xray_trace_id),
                (PARENT_ID_KEY, parent_id),
                (SAMPLED_FLAG_KEY, sampling_flag),
            ]
        ]
    )


def inject_span_context(
    span_context: trace.SpanContext,
    carrier: CarrierT,
    setter: Setter = default_setter,
) -> None:
    """Writes the X-Ray trace header for ``span_context`` into ``carrier``.

    Invalid span contexts leave the carrier untouched.
    """
    if not span_context.is_valid:
        return

    setter.set(carrier, TRACE_HEADER_KEY, to_trace_header(span_context))


def _split_trace_header(trace_header: str) -> typing.Dict[str, str]:
    header_fields = {}
    for kv_pair_str in trace_header.split(KV_PAIR_DELIMITER):
        key, _, value = kv_pair_str.partition(KEY_AND_VALUE_DELIMITER)
        header_fields[key.strip()] = value.strip()
    return header_fields


def _parse_trace_id(
    trace_id_str: typing.Optional[str],
) -> typing.Optional[int]:
    if not trace_id_str:
        return None

    parts = trace_id_str.split(TRACE_ID_DELIMITER)
    if len(parts) != TRACE_ID_PART_COUNT:
        return None

    version, timestamp_subset, unique_id_subset = parts
    if version != TRACE_ID_VERSION:
        return None

    if (
        _valid_trace_id_first_part.fullmatch(timestamp_subset) is None
        or _valid_trace_id_second_part.fullmatch(unique_id_subset) is None
    ):
        return None

    trace_id = int(timestamp_subset + unique_id_subset, 16)
    if trace_id == trace.INVALID_TRACE_ID:
        return None
    return trace_id


def _parse_span_id(span_id_str: typing.Optional[str]) -> typing.Optional[int]:
    if not span_id_str or _valid_parent_id.fullmatch(span_id_str) is None:
        return None

    span_id = int(span_id_str, 16)
    if span_id == trace.INVALID_SPAN_ID:
        return None
    return span_id


def _parse_sampled_flag(
    sampled_flag_str: typing.Optional[str],
) -> typing.Optional[bool]:
    if not sampled_flag_str:
        return None
    return sampled_flag_str == IS_SAMPLED


class AwsXRayPropagator(TextMapPropagator):
    """Propagator for the AWS X-Ray Trace Header propagation protocol.

    See:
    https://docs.aws.amazon.com/xray/latest/devguide/xray-concepts.html#xray-concepts-tracingheader
    """

    def extract(
        self,
        carrier: CarrierT,
        context: typing.Optional[Context] = None,
        getter: Getter = default_getter,
    ) -> Context:
        if context is None:
            context = Context()

        span_context = extract_span_context(carrier, getter)

        if not span_context.is_valid:
            return context

        return trace.set_span_in_context(
            trace.NonRecordingSpan(span_context), context=context
        )

    def inject(
        self,
        carrier: CarrierT,
        context: typing.Optional[Context] = None,
        setter: Setter = default_setter,
    ) -> None:
        span = trace.get_current_span(context=context)

        inject_span_context(span.get_span_context(), carrier, setter)

    @property
    def fields(self) -> typing.Set[str]:
        """Returns a set with the fields set in `inject`."""

        return set(fields())
