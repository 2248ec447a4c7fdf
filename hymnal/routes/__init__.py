"""
Routes package - Flask blueprints of the JSON API
"""
