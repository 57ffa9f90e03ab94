# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""Spelite – triplet-based spell knowledge base with hybrid EN/FR search."""

__version__ = "0.4.0"
