# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains middleware components for authentication, error
rendering and request/response processing in the ReliefGrid platform.
"""
