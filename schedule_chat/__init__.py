"""Conversational scheduling assistant: chat messages in, per-user schedule
changes out, mirrored to Google Calendar when the caller has a token."""
