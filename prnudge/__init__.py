"""prnudge - scheduled pull request reminders and escalations."""

__version__ = "0.1.0"
