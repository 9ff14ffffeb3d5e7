"""Admission-time checks: reference existence and SSL conflicts."""
