"""
Machine learning components of the Intent Service.
"""
