# tests/test_transitions.py
"""Tests for the picture state machine."""

import pytest

from gallery.errors import (
    AlreadyListed,
    InsufficientOffer,
    InvalidAmount,
    Listed,
    NotListed,
    NotOwner,
)
from gallery.picture import Picture
from gallery.transitions import (
    BuyPicture,
    ListPicture,
    Operation,
    TipCreator,
    TransferPicture,
    UnlistPicture,
    UpdatePicture,
    apply,
    check_amount,
    get_transition,
    mint,
)


@pytest.fixture
def picture():
    """An unlisted picture minted by alice."""
    return mint(0, "ipfs://a", 10, "alice")


@pytest.fixture
def listed(picture):
    """The same picture listed at 20."""
    return apply(picture, ListPicture(20), "alice")


class TestMint:
    """Tests for minting."""

    def test_mint_sets_creator_and_owner(self, picture):
        assert picture.creator == "alice"
        assert picture.owner == "alice"
        assert picture.for_sale is False
        assert picture.uri == "ipfs://a"
        assert picture.price == 10

    def test_mint_rejects_negative_price(self):
        with pytest.raises(InvalidAmount):
            mint(0, "ipfs://a", -1, "alice")

    def test_picture_is_immutable(self, picture):
        with pytest.raises(AttributeError):
            picture.owner = "bob"


class TestList:
    """Tests for listing and unlisting."""

    def test_list_sets_price_and_flag(self, picture):
        listed = apply(picture, ListPicture(20), "alice")
        assert listed.for_sale is True
        assert listed.price == 20
        # Original snapshot untouched
        assert picture.for_sale is False

    def test_list_by_non_owner(self, picture):
        with pytest.raises(NotOwner):
            apply(picture, ListPicture(20), "bob")

    def test_list_twice(self, listed):
        with pytest.raises(AlreadyListed):
            apply(listed, ListPicture(30), "alice")

    def test_unlist(self, listed):
        unlisted = apply(listed, UnlistPicture(), "alice")
        assert unlisted.for_sale is False
        assert unlisted.price == 20

    def test_unlist_not_listed(self, picture):
        with pytest.raises(NotListed):
            apply(picture, UnlistPicture(), "alice")

    def test_unlist_by_non_owner(self, listed):
        with pytest.raises(NotOwner):
            apply(listed, UnlistPicture(), "bob")

    def test_ownership_checked_before_listing_state(self, listed):
        """A non-owner gets NotOwner even when the state is also wrong."""
        with pytest.raises(NotOwner):
            apply(listed, ListPicture(5), "bob")


class TestBuy:
    """Tests for buying."""

    def test_buy_changes_owner(self, listed):
        bought = apply(listed, BuyPicture(20), "bob")
        assert bought.owner == "bob"
        assert bought.for_sale is False
        assert bought.creator == "alice"

    def test_buy_with_overpayment(self, listed):
        bought = apply(listed, BuyPicture(25), "bob")
        assert bought.owner == "bob"

    def test_buy_unlisted(self, picture):
        with pytest.raises(NotListed):
            apply(picture, BuyPicture(100), "bob")

    def test_buy_below_price(self, listed):
        with pytest.raises(InsufficientOffer):
            apply(listed, BuyPicture(19), "bob")

    def test_buy_negative_offer(self):
        with pytest.raises(InvalidAmount):
            BuyPicture(-5)


class TestUpdateAndTransfer:
    """Tests for owner edits."""

    def test_update(self, picture):
        updated = apply(picture, UpdatePicture("ipfs://b", 15), "alice")
        assert updated.uri == "ipfs://b"
        assert updated.price == 15
        assert updated.creator == "alice"

    def test_update_by_non_owner(self, picture):
        with pytest.raises(NotOwner):
            apply(picture, UpdatePicture("ipfs://b", 15), "bob")

    def test_update_while_listed(self, listed):
        with pytest.raises(Listed):
            apply(listed, UpdatePicture("ipfs://b", 15), "alice")

    def test_transfer(self, picture):
        transferred = apply(picture, TransferPicture("carol"), "alice")
        assert transferred.owner == "carol"
        assert transferred.creator == "alice"
        assert transferred.for_sale is False

    def test_transfer_while_listed(self, listed):
        with pytest.raises(Listed):
            apply(listed, TransferPicture("carol"), "alice")

    def test_transfer_by_non_owner(self, picture):
        with pytest.raises(NotOwner):
            apply(picture, TransferPicture("carol"), "bob")


class TestTip:
    """Tests for tipping."""

    def test_tip_leaves_picture_unchanged(self, listed):
        assert apply(listed, TipCreator(5), "dave") is listed

    def test_tip_must_be_positive(self):
        with pytest.raises(InvalidAmount):
            TipCreator(0)


class TestOperations:
    """Tests for operation plumbing."""

    def test_to_dict(self):
        assert UpdatePicture("ipfs://b", 15).to_dict() == {
            "operation": "update",
            "uri": "ipfs://b",
            "price": 15,
        }
        assert UnlistPicture().to_dict() == {"operation": "unlist"}

    def test_unregistered_operation(self, picture):
        class Burn(Operation):
            name = "burn"

        with pytest.raises(TypeError):
            get_transition(Burn)

    def test_creator_never_changes(self, picture):
        """Creator survives a full lifecycle."""
        p = apply(picture, UpdatePicture("ipfs://b", 5), "alice")
        p = apply(p, ListPicture(8), "alice")
        p = apply(p, BuyPicture(8), "bob")
        p = apply(p, TransferPicture("carol"), "bob")
        p = apply(p, TipCreator(1), "dave")
        assert p.creator == "alice"
        assert p.owner == "carol"


class TestCheckAmount:
    """Tests for amount validation."""

    def test_accepts_zero(self):
        assert check_amount(0) == 0

    def test_rejects_bool(self):
        with pytest.raises(InvalidAmount):
            check_amount(True)

    def test_rejects_float(self):
        with pytest.raises(InvalidAmount):
            check_amount(1.5)

    def test_positive(self):
        with pytest.raises(InvalidAmount):
            check_amount(0, positive=True)

    def test_invalid_amount_is_value_error(self):
        with pytest.raises(ValueError):
            check_amount("10")
