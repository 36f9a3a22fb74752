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

import os

import setuptools

BASE_DIR = os.path.dirname(__file__)
VERSION_FILENAME = os.path.join(
    BASE_DIR, "src", "opentelemetry", "propagators", "aws", "version.py"
)
PACKAGE_INFO = {}
with open(VERSION_FILENAME) as f:
    exec(f.read(), PACKAGE_INFO)

with open(os.path.join(BASE_DIR, "README.rst"), encoding="utf-8") as f:
    LONG_DESCRIPTION = f.read()

setuptools.setup(
    name="opentelemetry-propagator-aws-xray",
    version=PACKAGE_INFO["__version__"],
    description="AWS X-Ray Propagator for OpenTelemetry",
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/x-rst",
    author="OpenTelemetry Authors",
    author_email="cncf-opentelemetry-contributors@lists.cncf.io",
    license="Apache-2.0",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.8",
    package_dir={"": "src"},
    packages=setuptools.find_namespace_packages(
        where="src", include=["opentelemetry.*"]
    ),
    zip_safe=False,
    install_requires=[
        "opentelemetry-api ~= 1.12",
    ],
    extras_require={
        "sdk": [
            "opentelemetry-sdk ~= 1.12",
        ],
        "test": [
            "opentelemetry-sdk ~= 1.12",
            "pytest",
            "pytest-benchmark",
            "requests",
        ],
        "docs": [
            "sphinx",
            "sphinx-autodoc-typehints",
            "sphinx-rtd-theme",
        ],
    },
    entry_points={
        "opentelemetry_propagator": [
            "xray = opentelemetry.propagators.aws:AwsXRayPropagator",
        ],
        "opentelemetry_id_generator": [
            "xray = opentelemetry.propagators.aws.aws_xray_id_generator:AwsXRayIdGenerator",
        ],
    },
)
