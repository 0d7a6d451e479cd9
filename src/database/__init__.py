"""
Object-store layer.

Wraps the MongoDB connection and the GridFS bucket that holds uploaded
images, independent of the HTTP layer that uses it.
"""
