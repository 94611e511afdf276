"""Scan engine — secret detection, result cache, orchestration."""
