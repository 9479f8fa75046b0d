"""Refresh scheduling -- last-trigger-wins quoting and periodic polling."""

from curvetrade.scheduler.refresh import RefreshScheduler, SingleFlight

__all__ = ["RefreshScheduler", "SingleFlight"]
