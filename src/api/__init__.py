"""
HTTP command surface for the queue lifecycle controller.
"""
