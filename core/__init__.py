"""Core processing modules package.

This package contains the contract intelligence engine:
- contracts: risk scoring, negotiation points and email composition
- deals: contract to deal conversion mapping
- extraction: LLM-backed contract extraction agent
- lifecycle: contract state machine, repositories and controller
- errors: error taxonomy shared by all of the above
- cost_tracker: Cost calculation and logging utilities
"""
