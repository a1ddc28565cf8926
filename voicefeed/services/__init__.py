"""
Services module - backend access, session, player, feed, recorder and publishing.
"""
