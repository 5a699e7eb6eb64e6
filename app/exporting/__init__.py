"""
app/exporting package marker.
"""
