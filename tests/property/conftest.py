"""Hypothesis strategies for property testing.

Provides reusable strategies for generating declared Stripe configuration
and Stripe-side entities.
"""

from hypothesis import strategies as st

# Names that are valid function names, env variable names and internal ids
identifiers = st.from_regex(r"[a-zA-Z][a-zA-Z0-9_]{1,15}", fullmatch=True)

tag_values = st.sampled_from(["api", "billing", "dev", "prod", "Serverless Stripe", ""])


@st.composite
def webhook_lists(draw, max_size=6):
    """Declared webhooks whose function names may repeat.

    Returns:
        tuple: (list of webhook dicts, function definitions for them)
    """
    names = draw(st.lists(st.sampled_from(["alpha", "beta", "gamma", "delta"]), max_size=max_size))
    webhooks = [
        {
            "functionName": name,
            "events": ["invoice.paid"],
            "webhookSecretEnvVariableName": f"SECRET_{index}",
        }
        for index, name in enumerate(names)
    ]
    functions = {
        name: {"events": [{"http": {"method": "post", "path": f"/{name}"}}]}
        for name in set(names)
    }
    return webhooks, functions


@st.composite
def owned_metadata(draw):
    """Metadata dict with independently drawn ownership tags."""
    metadata = {}
    for key in ("managedBy", "service", "stage"):
        value = draw(tag_values)
        if value:
            metadata[key] = value
    return metadata


@st.composite
def price_tiers(draw, max_size=6):
    """Declared price tiers with unique ids and possibly repeated content."""
    count = draw(st.integers(min_value=1, max_value=max_size))
    return [
        {
            "id": f"price_{index}",
            "price": draw(st.sampled_from([0, 500, 9900])),
            "currency": draw(st.sampled_from(["sek", "SEK", "eur"])),
            "countryCode": draw(st.sampled_from(["SE", "FI"])),
            "interval": draw(st.sampled_from(["month", "year", None])),
        }
        for index in range(count)
    ]
