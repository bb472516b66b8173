"""Utility helpers for the CertificateSet Operator."""
