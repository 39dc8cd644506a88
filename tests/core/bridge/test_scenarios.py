"""
Tests for the default scenario suite and the scenario models.
"""

from decimal import Decimal

from bridge_harness.config import Settings
from bridge_harness.core.bridge.models import (
    BridgeScenario,
    FallbackRoute,
    PendingClaim,
    PrimaryRoute,
    ResultStatus,
    RouteUnavailable,
    ScenarioResult,
)
from bridge_harness.core.bridge.scenarios import default_scenarios
from bridge_harness.core.tokens import default_tokens


class TestDefaultScenarios:
    def test_eighteen_scenarios(self):
        assert len(default_scenarios()) == 18

    def test_each_round_trip_returns_the_way_it_came(self):
        scenarios = default_scenarios()

        assert (scenarios[0].from_chain, scenarios[0].to_chain, scenarios[0].token) == ("base", "katana", "ETH")
        assert (scenarios[1].from_chain, scenarios[1].to_chain, scenarios[1].token) == ("katana", "base", "ETH")
        for there, back in zip(scenarios[::2], scenarios[1::2]):
            assert (there.from_chain, there.to_chain) == (back.to_chain, back.from_chain)
            assert there.token == back.token

    def test_sources_are_resolved_before_use(self):
        tokens = default_tokens(Settings(_env_file=None, custom_token_katana="0x" + "ab" * 20))
        bridged_in = set()

        for scenario in default_scenarios():
            source = tokens[scenario.token][scenario.from_chain]
            assert source.is_resolved or (scenario.token, scenario.from_chain) in bridged_in, scenario.name
            bridged_in.add((scenario.token, scenario.to_chain))

    def test_okb_and_astest_start_from_their_home_chain(self):
        names = [s.name for s in default_scenarios()]

        assert names.index("OKB: OKX -> Katana") < names.index("OKB: Katana -> OKX")
        assert names.index("ASTEST: Katana -> Base") < names.index("ASTEST: Base -> Katana")

    def test_token_coverage(self):
        by_pair = {}
        for scenario in default_scenarios():
            pair = frozenset((scenario.from_chain, scenario.to_chain))
            by_pair.setdefault(pair, set()).add(scenario.token)

        assert by_pair == {
            frozenset(("base", "katana")): {"ETH", "WBTC", "ASTEST"},
            frozenset(("katana", "okx")): {"ETH", "OKB", "WBTC"},
            frozenset(("katana", "ethereum")): {"ETH", "WBTC", "ASTEST"},
        }

    def test_labels(self):
        labels = [s.name for s in default_scenarios()]
        assert "WBTC: Katana -> Ethereum" in labels
        assert "OKB: OKX -> Katana" in labels
        assert len(set(labels)) == 18


class TestModels:
    def test_scenario_name_defaults(self):
        scenario = BridgeScenario("katana", "okx", "ETH", amount=Decimal("0.5"))
        assert scenario.name == "katana -> okx (ETH)"
        assert scenario.to_dict()["name"] == "katana -> okx (ETH)"

    def test_route_outcome_tags(self):
        assert PrimaryRoute({"to": "0x1"}, route={"provider": "AggLayer"}).requires_claim is True
        assert PrimaryRoute({"to": "0x1"}, route={"provider": {"key": "lifi"}}).requires_claim is False
        assert PrimaryRoute({"to": "0x1"}).requires_claim is False
        assert FallbackRoute({"to": "0x1"}).requires_claim is True
        assert RouteUnavailable("none").method is None

    def test_pending_claim_survives_serialization(self):
        claim = PendingClaim(
            source_tx_hash="0xaa",
            source_chain="katana",
            destination_chain="okx",
            source_chain_id=747474,
            source_network_id=20,
            destination_chain_id=196,
            destination_network_id=2,
            token="ETH",
            amount="0.01",
        )

        restored = PendingClaim.from_dict(claim.to_dict())

        assert restored == claim

    def test_result_success_includes_dry_run(self):
        scenario = BridgeScenario("katana", "okx", "ETH")
        assert ScenarioResult(scenario, ResultStatus.SUCCESS_DRY_RUN).succeeded is True
        assert ScenarioResult(scenario, ResultStatus.SKIPPED).succeeded is False
        assert ScenarioResult(scenario, ResultStatus.FAILED).to_dict()["gasUsed"] is None
