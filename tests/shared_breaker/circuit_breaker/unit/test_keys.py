from shared_breaker.circuit_breaker import keys_for


def test_keys_for_is_deterministic() -> None:
    assert keys_for("Payment API") == keys_for("Payment API")


def test_keys_share_slugged_namespace() -> None:
    keys = keys_for("Payment API")

    assert keys.namespace == "circuit_breaker:payment-api"
    assert keys.all() == (
        "circuit_breaker:payment-api:current_state",
        "circuit_breaker:payment-api:request_count",
        "circuit_breaker:payment-api:error_count",
        "circuit_breaker:payment-api:open_state_ttl",
    )


def test_names_with_same_slug_share_keys() -> None:
    assert keys_for("payment_api") == keys_for("  Payment API ")


def test_keys_for_handles_empty_and_symbol_only_names() -> None:
    assert keys_for("").state == "circuit_breaker::current_state"
    assert keys_for("!!!") == keys_for("")
