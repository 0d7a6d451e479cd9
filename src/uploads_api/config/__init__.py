"""
Configuration management for the Uploads API.

Contains the Pydantic settings model and the cached accessor used by the
application factory, the CLI and the Lambda handler.
"""
