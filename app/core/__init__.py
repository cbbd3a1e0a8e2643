"""
Core building blocks shared by the outreach orchestrator
"""
