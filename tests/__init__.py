"""Test suite for the client intake wizard and submission handler.

This package contains tests for:
- Validation engine and the required-field rule
- Wizard lifecycle state machine and event stream
- Intake wizard navigation, visibility and submit behaviour
- Payload record, storage, mail rendering and delivery
- Submission handler phases and the Flask endpoints
- Wizard-to-handler integration
"""
