"""
Tests for the tree build job and CSV loading.
"""

import pytest

from airdrop.crypto.leaf import InputError
from airdrop.crypto.merkle import verify_proof
from airdrop.crypto.store import read_proofs, read_tree
from airdrop.services.batch import build_tree, load_allocation_csv, run_build_job

from conftest import ALICE, BOB, CAROL


def write_csv(tmp_path, text: str):
    path = tmp_path / "allocations.csv"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadAllocationCsv:
    """Tests for CSV parsing."""

    def test_reads_rows(self, tmp_path) -> None:
        path = write_csv(tmp_path, f"address,amount\n{ALICE},500\n{BOB},300\n")

        assert load_allocation_csv(path) == [(ALICE, "500"), (BOB, "300")]

    def test_skips_blank_lines_and_whitespace(self, tmp_path) -> None:
        """Test padding around values and empty lines are ignored."""
        path = write_csv(tmp_path, f" address , amount \n\n {ALICE} , 500 \n,\n")

        assert load_allocation_csv(path) == [(ALICE, "500")]

    def test_extra_columns_ignored(self, tmp_path) -> None:
        path = write_csv(tmp_path, f"address,amount,note\n{ALICE},500,team\n")

        assert load_allocation_csv(path) == [(ALICE, "500")]

    def test_missing_header(self, tmp_path) -> None:
        path = write_csv(tmp_path, f"wallet,value\n{ALICE},500\n")

        with pytest.raises(InputError, match="header"):
            load_allocation_csv(path)

    def test_incomplete_row(self, tmp_path) -> None:
        path = write_csv(tmp_path, f"address,amount\n{ALICE},500\n{BOB},\n")

        with pytest.raises(InputError, match="Incomplete row"):
            load_allocation_csv(path)

    def test_no_rows(self, tmp_path) -> None:
        path = write_csv(tmp_path, "address,amount\n")

        with pytest.raises(InputError, match="No allocation rows"):
            load_allocation_csv(path)

    def test_empty_file(self, tmp_path) -> None:
        path = write_csv(tmp_path, "")

        with pytest.raises(InputError):
            load_allocation_csv(path)


class TestBuildJob:
    """Tests for building and persisting artifacts."""

    def test_build_tree(self) -> None:
        tree = build_tree([(ALICE, "500"), (BOB, "300")])
        assert tree.leaf_count == 2

    def test_run_build_job(self, tmp_path) -> None:
        """Test both artifacts are written and agree with each other."""
        tree_path = tmp_path / "tree.json"
        proofs_path = tmp_path / "proofs.json"

        result = run_build_job([(ALICE, 500), (BOB, 300), (CAROL, 200)], tree_path, proofs_path)

        assert result.leaf_count == 3
        assert result.total_amount == 1000
        assert result.to_dict()["total_amount"] == "1000"

        tree = read_tree(tree_path)
        proofs = read_proofs(proofs_path)
        assert tree.root_hex == result.root
        for leaf in tree.leaves:
            assert verify_proof(tree.root, leaf.hash, proofs[leaf.address])

    def test_duplicate_writes_nothing(self, tmp_path) -> None:
        """Test a rejected input leaves no artifact behind."""
        tree_path = tmp_path / "tree.json"
        proofs_path = tmp_path / "proofs.json"

        with pytest.raises(InputError, match="Duplicate"):
            run_build_job([(ALICE, 500), (ALICE, 1)], tree_path, proofs_path)

        assert list(tmp_path.iterdir()) == []

    def test_failure_keeps_previous_artifacts(self, tmp_path) -> None:
        """Test a failed rebuild does not touch the last good artifacts."""
        tree_path = tmp_path / "tree.json"
        proofs_path = tmp_path / "proofs.json"
        first = run_build_job([(ALICE, 500)], tree_path, proofs_path)

        with pytest.raises(InputError):
            run_build_job([(ALICE, -1)], tree_path, proofs_path)

        assert read_tree(tree_path).root_hex == first.root
