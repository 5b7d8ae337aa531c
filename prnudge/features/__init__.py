"""Feature modules: connections, schedules, escalations, notifications, tokens, jobs."""
