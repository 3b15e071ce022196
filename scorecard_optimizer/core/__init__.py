"""
Scorecard Optimizer - Core Package
Contains business logic modules.
"""
