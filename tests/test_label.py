import pytest

from msgbus.codec import Decoder, Encoder
from msgbus.errors import DecodeError
from msgbus.label import (
    And,
    FalseOp,
    Label,
    LabelOp,
    Leaf,
    Not,
    Or,
    TrueOp,
    label,
)


def test_empty_label():
    assert len(label()) == 0
    assert list(label()) == []


def test_label():
    earth = "earth"
    moon = "moon"
    lab = label("solar", earth, moon)
    assert lab.all(["solar", "earth", "moon"])

    lab.remove("moon")
    assert not lab.all(["moon"])


def test_op_true():
    assert TrueOp().validate(label("foo"))


def test_op_false():
    assert not FalseOp().validate(label("foo"))


def test_op_leaf():
    op = LabelOp.coerce("foo")
    assert op.validate(label("foo"))
    assert not op.validate(label("bar"))


def test_op_not():
    op = ~LabelOp.coerce("foo")
    assert op.validate(label("bar", "baz"))
    assert not op.validate(label("foo"))


def test_op_and():
    op = LabelOp.coerce("foo").and_("bar")
    assert op.validate(label("foo", "bar", "baz"))
    assert not op.validate(label("foo"))


def test_op_or():
    op = LabelOp.coerce("foo").or_("bar")
    assert op.validate(label("foo"))
    assert op.validate(label("bar"))
    assert not op.validate(label("baz"))


def test_insert_deduplicates_and_keeps_order():
    lab = Label(["b", "a", "b"])
    lab.insert("a")
    lab.insert("c")
    assert list(lab) == ["b", "a", "c"]
    assert len(lab) == 3


def test_label_equality_is_ordered():
    assert label("a", "b") == label("a", "b")
    assert not label("a", "b") == label("b", "a")


def test_all_of_empty_is_true():
    assert label().all([])


def test_label_round_trip():
    lab = label("solar", "moon")
    enc = Encoder()
    lab.encode_to(enc)
    assert Label.decode_from(Decoder(enc.getvalue())) == lab


def test_leaf_wire_bytes():
    enc = Encoder()
    Leaf("foo").encode_to(enc)
    assert enc.getvalue() == b"\x02\x03foo"


def test_op_round_trip():
    op = LabelOp.coerce("foo").and_("bar").or_(~LabelOp.coerce("baz"))
    enc = Encoder()
    op.encode_to(enc)
    decoded = LabelOp.decode_from(Decoder(enc.getvalue()))
    assert decoded == op
    assert decoded == Or(And(Leaf("foo"), Leaf("bar")), Not(Leaf("baz")))


@pytest.mark.parametrize("op", [TrueOp(), FalseOp()])
def test_constant_round_trip(op):
    enc = Encoder()
    op.encode_to(enc)
    assert LabelOp.decode_from(Decoder(enc.getvalue())) == op


def test_unknown_variant():
    with pytest.raises(DecodeError):
        LabelOp.decode_from(Decoder(b"\x09"))


def test_coerce_bools_and_ops():
    assert LabelOp.coerce(True) == TrueOp()
    assert LabelOp.coerce(False) == FalseOp()
    leaf = Leaf("x")
    assert LabelOp.coerce(leaf) is leaf


def test_coerce_rejects_other_types():
    with pytest.raises(TypeError):
        LabelOp.coerce(42)