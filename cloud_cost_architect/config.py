#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
config.py

Configuration constants and defaults for the cloud cost-estimation engine.

Every value can be overridden through an environment variable with the
COST_ENGINE_ prefix, so the same code runs unchanged in tests, in the CLI
and when embedded in a larger service.
"""

import os

# ---------------------------------------------------------------------
# Defaults: provider / region / currency
# ---------------------------------------------------------------------
# DEFAULT_PROVIDER:
# - The only provider the built-in catalog knows about.
# - Resources declaring another provider are rejected with UnsupportedProviderError.
DEFAULT_PROVIDER = os.getenv("COST_ENGINE_DEFAULT_PROVIDER", "aws")

# SUPPORTED_PROVIDERS:
# - CSV list; extend it only together with a catalog for the new provider.
SUPPORTED_PROVIDERS = [
    p.strip().lower()
    for p in os.getenv("COST_ENGINE_SUPPORTED_PROVIDERS", DEFAULT_PROVIDER).split(",")
    if p.strip()
]

# DEFAULT_REGION:
# - Used by the CLI when a resource file does not specify a region.
DEFAULT_REGION = os.getenv("COST_ENGINE_DEFAULT_REGION", "us-east-1")

# DEFAULT_CURRENCY:
# - All built-in rate tables are quoted in USD.
DEFAULT_CURRENCY = os.getenv("COST_ENGINE_DEFAULT_CURRENCY", "USD")

# ---------------------------------------------------------------------
# Proration
# ---------------------------------------------------------------------
# HOURS_PER_MONTH:
# - Canonical month used to prorate per-month rates and free tiers.
# - 720 = 30 days * 24 hours. Period classification uses the same boundary.
HOURS_PER_MONTH = 720.0

# HOURS_PER_DAY:
# - Upper bound of the "hourly" reporting period.
HOURS_PER_DAY = 24.0

# FLOAT_TOLERANCE:
# - Allowed drift when checking total == sum(components).
FLOAT_TOLERANCE = 1e-6

# ---------------------------------------------------------------------
# Local data locations
# ---------------------------------------------------------------------
# CATALOG_DIR:
# - Optional extra directory with YAML rate tables. Tables found here are
#   loaded after the built-in definitions and replace them per resource type.
CATALOG_DIR = os.getenv("COST_ENGINE_CATALOG_DIR", "").strip()

# RATE_STORE_FILE:
# - Optional YAML/JSON file used as the persisted rate store.
RATE_STORE_FILE = os.getenv("COST_ENGINE_RATE_STORE_FILE", "").strip()

# RULE_STORE_FILE:
# - Optional YAML/JSON file with persisted hidden dependency rules.
RULE_STORE_FILE = os.getenv("COST_ENGINE_RULE_STORE_FILE", "").strip()

# ---------------------------------------------------------------------
# Resolution behaviour
# ---------------------------------------------------------------------
# STORE_TIMEOUT_SECONDS:
# - A store lookup slower than this degrades to the built-in catalog.
# - 0 disables the timeout (lookups run inline).
STORE_TIMEOUT_SECONDS = float(os.getenv("COST_ENGINE_STORE_TIMEOUT", "0") or 0)

# HIDDEN_DEPENDENCY_MAX_DEPTH:
# - How many levels of synthesized children are expanded below a declared
#   resource. The visited-pair guard applies regardless of this limit.
HIDDEN_DEPENDENCY_MAX_DEPTH = int(os.getenv("COST_ENGINE_HIDDEN_MAX_DEPTH", "3"))

# MAX_WORKERS:
# - Worker threads used by architecture aggregation. 1 = sequential.
MAX_WORKERS = int(os.getenv("COST_ENGINE_MAX_WORKERS", "1"))

# ---------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------
# TRACE_FILE:
# - If set, resolver tiers and hidden dependency expansion are appended as JSONL.
TRACE_FILE = os.getenv("COST_ENGINE_TRACE_FILE", "").strip()

# LOG_LEVEL:
# - Default logging level used by the CLI.
LOG_LEVEL = os.getenv("COST_ENGINE_LOG_LEVEL", "WARNING")
