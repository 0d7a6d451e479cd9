"""
Adapter layer for the Uploads API.

Contains clients for the services the API forwards work to.
"""
