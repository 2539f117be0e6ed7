"""bewell: phone-sensor wellbeing tracking (activity, conversation, sleep)."""

__version__ = "0.1.0"
