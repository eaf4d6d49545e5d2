"""
Business logic shared by several routers.
"""
