"""
Application core: middlewares, CORS and lifespan.
"""
