"""Prompt builders for the LLM adapter.

Each module here knows how to phrase a repair request for a model and which
response format the adapter's parser expects back.
"""
