# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from .mockhttp import MockForwarder, MockForwarderError

__all__ = ("MockForwarder", "MockForwarderError")
