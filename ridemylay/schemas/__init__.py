"""
Pydantic schemas for wire payloads and API responses.
"""
