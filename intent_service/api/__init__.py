"""
HTTP API of the Intent Service.
"""
