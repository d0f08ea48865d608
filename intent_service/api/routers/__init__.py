"""
API routers for the Intent Service.
"""
