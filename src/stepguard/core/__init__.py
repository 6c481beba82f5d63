"""
Validation engine core: models, step types, plan building and orchestration.
"""
