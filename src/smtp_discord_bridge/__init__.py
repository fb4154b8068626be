"""SMTP to Discord webhook bridge.

Every mail accepted by the embedded SMTP server becomes one Discord webhook
message. The package provides:

- Webhook credential resolution from a URL or an explicit id/token pair
- A recipient gate consulted for every ``RCPT TO``
- Per-mail body accumulation into an immutable ``Mail`` record
- A single ordered dispatch worker that owns the webhook and never runs
  more than one outbound call at a time
- Prometheus metrics and a click command-line entry point

Example:
    Running the bridge programmatically::

        from smtp_discord_bridge.config_loader import load_config
        from smtp_discord_bridge.server import BridgeService

        config = load_config("/etc/smtp-discord-bridge/config.ini")
        service = BridgeService(config)
        await service.start()
        # SMTP listener is now accepting mail
        await service.stop()
"""

__version__ = "0.3.0"
