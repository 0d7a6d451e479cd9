"""Uploads API: image/PDF uploads backed by GridFS and a PDF conversion service."""
