"""
HTTP gateway: configuration, request dispatch and the FastAPI application.
"""
