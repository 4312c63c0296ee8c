"""Presentation and construction of NIM custom resources."""
