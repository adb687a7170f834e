"""SSO / OAuth2 authentication broker"""
