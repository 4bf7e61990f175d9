"""
Tests for the command line interface.
"""

import json

from airdrop.cli import main
from airdrop.crypto.store import read_tree

from conftest import ALICE, BOB, CAROL, DAVE


def write_allocations(tmp_path) -> str:
    path = tmp_path / "allocations.csv"
    path.write_text(f"address,amount\n{ALICE},500\n{BOB},300\n{CAROL},200\n", encoding="utf-8")
    return str(path)


def build(tmp_path) -> str:
    tree_path = str(tmp_path / "tree.json")
    code = main([
        "build",
        "--csv", write_allocations(tmp_path),
        "--tree", tree_path,
        "--proofs", str(tmp_path / "proofs.json"),
    ])
    assert code == 0
    return tree_path


class TestCli:
    """Tests for build, proof and verify commands."""

    def test_build(self, tmp_path, capsys) -> None:
        tree_path = build(tmp_path)

        summary = json.loads(capsys.readouterr().out)
        assert summary["leaf_count"] == 3
        assert summary["total_amount"] == "1000"
        assert summary["root"] == read_tree(tree_path).root_hex
        assert (tmp_path / "proofs.json").exists()

    def test_proof(self, tmp_path, capsys) -> None:
        tree_path = build(tmp_path)
        capsys.readouterr()

        assert main(["proof", "--tree", tree_path, "--address", BOB]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["amount"] == "300"
        assert output["root"] == read_tree(tree_path).root_hex

    def test_proof_unknown_address(self, tmp_path) -> None:
        tree_path = build(tmp_path)
        assert main(["proof", "--tree", tree_path, "--address", DAVE]) == 1

    def test_verify(self, tmp_path, capsys) -> None:
        tree_path = build(tmp_path)

        assert main(["verify", "--tree", tree_path, "--address", ALICE, "--amount", "500"]) == 0
        assert main(["verify", "--tree", tree_path, "--address", ALICE, "--amount", "501"]) == 1
        assert "Valid proof: False" in capsys.readouterr().out

    def test_bad_csv(self, tmp_path) -> None:
        path = tmp_path / "bad.csv"
        path.write_text(f"address,amount\n{ALICE},500\n{ALICE},1\n", encoding="utf-8")

        code = main([
            "build",
            "--csv", str(path),
            "--tree", str(tmp_path / "tree.json"),
            "--proofs", str(tmp_path / "proofs.json"),
        ])

        assert code == 2
        assert not (tmp_path / "tree.json").exists()

    def test_missing_tree(self, tmp_path) -> None:
        assert main(["proof", "--tree", str(tmp_path / "none.json"), "--address", ALICE]) == 2
