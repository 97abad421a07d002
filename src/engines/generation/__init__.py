"""
Generation Engine

Task routing, image providers, job tracking and the orchestrating service.
"""
