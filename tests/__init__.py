"""Test suite for the Submission Request workflow core.

This package contains tests for:
- Section registry, completion evaluation and derived Review status
- Structural equality and unsaved-change detection
- Section validity from JSON Schema
- DocumentStore load/save, failure handling and the single in-flight call rule
- Workflow transitions and their client-side preconditions
- Navigation guard decisions (Save, Discard, Cancel)
- End-to-end scenarios against the in-memory gateway
"""
