"""
RallyBot - challenge your channel to a game from Slack.
"""

__version__ = "0.1.0"
