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

from opentelemetry.propagators.aws.aws_xray_propagator import (
    TRACE_HEADER_KEY,
    AwsXRayPropagator,
    extract_span_context,
    fields,
    inject_span_context,
    to_trace_header,
)
from opentelemetry.propagators.aws.version import __version__

__all__ = [
    "TRACE_HEADER_KEY",
    "AwsXRayPropagator",
    "extract_span_context",
    "fields",
    "inject_span_context",
    "to_trace_header",
    "__version__",
]
