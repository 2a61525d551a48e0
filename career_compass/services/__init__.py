"""
Business services: auth gateway, profile access, session store, admin views
"""
