"""Workpunch relay: forwards clock-in/clock-out events to Salesforce."""
