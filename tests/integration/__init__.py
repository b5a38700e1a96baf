"""Tests that spawn subprocesses: a stand-in go script or the real toolchain."""
