"""
Domain services shared by the routers.
"""
