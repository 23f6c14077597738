"""
Unit tests for extracting values from tool output.
"""

import pytest

from subnetbox.commands.errors import ExtractionError
from subnetbox.commands.extract import (
    extract_following_line,
    extract_inline_token,
    extract_labeled_value,
    extract_subnet_id,
    peer_id_from_multiaddr,
    require_value,
)

DEPLOY_OUTPUT = """
Deploying contracts...
{
  "Gateway": "0x9A676e781A523b5d0C0e43731313A708CB607508",
  "SubnetRegistry": "0x0B306BF915C4d645ff596e518fAf3F9669b97016"
}
done
"""

BOOTSTRAP_OUTPUT = """
[cargo-make] INFO - Running Task: child-validator
CometBFT node ID:
  7b3b5bd2f4a0c3a1e9d8f2c6b5a4e3d2c1b0a9f8
IPLD Resolver Multiaddress:
 /ip4/0.0.0.0/tcp/26655/p2p/16Uiu2HAm4tJHdMzk8nSc4Cm8uHbF4TfQPgjsyh5PDgSRzb5Fzv5N
[cargo-make] INFO - Build Done in 12.34 seconds.
"""


class TestExtractLabeledValue:
    def test_simple_label(self):
        assert extract_labeled_value('"Gateway": "0xABCDEF"', "Gateway") == "0xABCDEF"

    def test_missing_label_is_empty(self):
        assert extract_labeled_value('"Registry": "0x1"', "Gateway") == ""
        assert extract_labeled_value("", "Gateway") == ""

    def test_from_deploy_output(self):
        assert (
            extract_labeled_value(DEPLOY_OUTPUT, "SubnetRegistry")
            == "0x0B306BF915C4d645ff596e518fAf3F9669b97016"
        )

    def test_label_must_be_exact(self):
        # "SubnetRegistry" must not satisfy a lookup for "Registry"
        assert extract_labeled_value(DEPLOY_OUTPUT, "Registry") == ""


class TestExtractTokens:
    def test_subnet_id_after_marker(self):
        output = "2024 INFO created subnet actor with id: /r31337/t410fabc xyz"
        assert extract_subnet_id(output) == "/r31337/t410fabc"

    def test_subnet_id_missing(self):
        assert extract_subnet_id("subnet created") == ""

    def test_supply_source_token(self):
        output = "== Logs ==\n  contract Hoku 0xE6E340D132b5f46d1e472DebcD681B2aBc16e57E\n"
        assert (
            extract_inline_token(output, "contract Hoku")
            == "0xE6E340D132b5f46d1e472DebcD681B2aBc16e57E"
        )

    def test_following_line_strips_blanks(self):
        assert (
            extract_following_line(BOOTSTRAP_OUTPUT, "CometBFT node ID:")
            == "7b3b5bd2f4a0c3a1e9d8f2c6b5a4e3d2c1b0a9f8"
        )

    def test_following_line_missing_marker(self):
        assert extract_following_line(BOOTSTRAP_OUTPUT, "Nope:") == ""

    def test_following_line_marker_on_last_line(self):
        assert extract_following_line("CometBFT node ID:", "CometBFT node ID:") == ""

    def test_peer_id(self):
        multiaddr = extract_following_line(BOOTSTRAP_OUTPUT, "IPLD Resolver Multiaddress:")
        assert (
            peer_id_from_multiaddr(multiaddr)
            == "16Uiu2HAm4tJHdMzk8nSc4Cm8uHbF4TfQPgjsyh5PDgSRzb5Fzv5N"
        )

    def test_peer_id_absent(self):
        assert peer_id_from_multiaddr("/ip4/0.0.0.0/tcp/26655") == ""


class TestRequireValue:
    def test_passes_value_through(self):
        assert require_value("0x1", "Gateway", "contracts-deployed") == "0x1"

    def test_empty_raises_tagged_error(self):
        with pytest.raises(ExtractionError) as excinfo:
            require_value("", "Gateway", "contracts-deployed")
        assert excinfo.value.label == "Gateway"
        assert excinfo.value.phase == "contracts-deployed"
