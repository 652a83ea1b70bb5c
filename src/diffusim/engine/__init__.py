"""Scheduling loop, parallel helpers and run orchestration."""
