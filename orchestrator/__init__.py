"""Orchestration package sequencing the read, plan, export and report phases."""

from orchestrator.migration_orchestrator import MigrationOrchestrator
from orchestrator.migration_report import MigrationReport

__all__ = ['MigrationOrchestrator', 'MigrationReport']
