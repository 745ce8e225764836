"""Two-factor authentication services"""
