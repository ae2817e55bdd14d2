"""salesflow.integrations - External service gateway modules.

All outbound HTTP calls to third-party APIs go through a gateway in this
package, never via bare `requests` calls in services or blueprints.

Every gateway call is:
  - Authenticated (API key injected by the gateway)
  - Circuit-broken to prevent hammering a provider that is down
  - Reported back as a result or a typed error for the caller to audit

Current gateways:
  messenger_gateway.MaytapiGateway - WhatsApp messages via the Maytapi API
"""
