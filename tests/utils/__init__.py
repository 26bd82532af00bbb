"""Shared documents and result builders for NormCache tests."""
