"""Third-party integrations: email delivery (SES) and error tracking (Sentry)."""
