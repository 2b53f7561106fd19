# Slack integration module
from kbsync.integrations.slack.client import SlackChannelAdapter

__all__ = ["SlackChannelAdapter"]
