import pytest

from songsheet.chords import ChordQuality
from songsheet.shapes import (
    BARRE_TEMPLATES,
    CUSTOM_LABEL,
    DEFAULT_LABEL,
    OPEN_SHAPES,
    Barre,
    BuiltInSelection,
    ChordShape,
    CustomChordShape,
    CustomSelection,
    ShapeTemplate,
    build_default_override_id,
    diagram_start_fret,
    format_frets,
    get_chord_shape,
    get_chord_shapes,
    list_built_in_chord_shapes,
    merge_chord_shapes,
    parse_default_override_id,
    shape_from_template,
)

X = "x"


def _shape(*frets):
    return ChordShape(frets=tuple(frets))


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def test_barre_templates_cover_every_quality():
    assert set(BARRE_TEMPLATES) == set(ChordQuality)


def test_every_built_in_shape_has_six_strings():
    for shapes in OPEN_SHAPES.values():
        for shape in shapes:
            assert len(shape.frets) == 6
            assert shape.is_open
    for templates in BARRE_TEMPLATES.values():
        for template in templates:
            assert len(template.frets) == 6


def test_chord_shape_rejects_wrong_string_count():
    with pytest.raises(ValueError, match="6 frets"):
        ChordShape(frets=(0, 2, 2, 1, 0))


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def test_open_shape_for_e_major():
    shape = get_chord_shape("E")
    assert shape.frets == (0, 2, 2, 1, 0, 0)
    assert shape.is_open


def test_open_shape_for_c_major():
    assert get_chord_shape("C").frets == (X, 3, 2, 0, 1, 0)


def test_open_shapes_come_before_barre_shapes():
    shapes = get_chord_shapes("G")
    assert len(shapes) == 2
    assert shapes[0].is_open
    assert shapes[1].frets == (3, 5, 5, 4, 3, 3)
    assert not shapes[1].is_open


def test_f_sharp_barre_starts_at_second_fret():
    shape = get_chord_shape("F#")
    assert shape.frets == (2, 4, 4, 3, 2, 2)
    assert shape.barres == (Barre(fret=2, from_string=0, to_string=5, finger=1),)
    assert not shape.is_open


def test_flat_and_sharp_spellings_share_a_shape():
    assert get_chord_shape("Abm") == get_chord_shape("G#m")
    assert get_chord_shape("G#m").frets == (4, 6, 6, 4, 4, 4)


def test_barre_shape_above_ninth_fret():
    shape = get_chord_shape("Eb")
    assert shape.frets == (11, 13, 13, 12, 11, 11)
    assert shape.barres[0].fret == 11


def test_diminished_template_uses_b_root():
    assert get_chord_shape("Bdim").frets == (X, 2, 3, 4, 3, X)
    assert get_chord_shape("Cdim7").frets == (X, 3, 4, 2, 4, 2)


def test_slash_chord_uses_root_shape():
    assert get_chord_shape("D/F#") == get_chord_shape("D")


@pytest.mark.parametrize("symbol", ["Cxyz", "C6", "H", "", "Csus2"])
def test_no_shape_available(symbol):
    assert get_chord_shapes(symbol) == []
    assert get_chord_shape(symbol) is None


def test_sus2_has_open_shapes_only():
    assert get_chord_shape("Asus2").frets == (X, 0, 2, 2, 0, 0)


def test_shape_from_template_drops_barre_at_nut():
    template = ShapeTemplate("F", (1, 3, 3, 2, 1, 1), barres=(Barre(fret=0, from_string=0, to_string=5),))
    shape = shape_from_template(template, "F")
    assert shape.barres == ()


def test_shape_from_template_rejects_bad_root():
    template = BARRE_TEMPLATES[ChordQuality.MAJOR][0]
    assert shape_from_template(template, "H") is None


def test_list_built_in_chord_shapes():
    shapes = list_built_in_chord_shapes()
    assert shapes["C"][0].frets == (X, 3, 2, 0, 1, 0)
    assert len(shapes["G"]) == 1
    assert shapes["F"][0].frets == (1, 3, 3, 2, 1, 1)
    assert "Bdim" in shapes
    assert "Bm7b5" in shapes
    assert "Fm7" in shapes


# ---------------------------------------------------------------------------
# Diagram helpers
# ---------------------------------------------------------------------------


def test_format_frets():
    assert format_frets(get_chord_shape("C")) == "x32010"
    assert format_frets(get_chord_shape("G#m")) == "466444"
    assert format_frets(get_chord_shape("Eb")) == "11-13-13-12-11-11"


def test_diagram_start_fret():
    assert diagram_start_fret(get_chord_shape("C")) == 1
    assert diagram_start_fret(get_chord_shape("F")) == 1
    assert diagram_start_fret(get_chord_shape("G#m")) == 4
    assert diagram_start_fret(get_chord_shape("Eb")) == 11


def test_diagram_start_fret_moves_up_for_wide_shapes():
    assert diagram_start_fret(_shape(2, X, X, X, X, 8)) == 4


def test_diagram_start_fret_without_fretted_notes():
    assert diagram_start_fret(_shape(0, 0, 0, 0, 0, 0)) == 1
    assert diagram_start_fret(_shape(X, X, X, X, X, X)) == 1


# ---------------------------------------------------------------------------
# Default-override ids
# ---------------------------------------------------------------------------


def test_build_default_override_id():
    assert build_default_override_id("C#m7", 2) == "default-override:C%23m7:2"
    assert build_default_override_id("Bb/D", 0) == "default-override:Bb%2FD:0"


@pytest.mark.parametrize("chord", ["C", "C#m7", "Bb/D", "F#m7b5/A"])
def test_default_override_id_round_trip(chord):
    assert parse_default_override_id(build_default_override_id(chord, 3)) == (chord, 3)


@pytest.mark.parametrize(
    "shape_id",
    ["custom-123", "default-override:C:abc", "default-override:C", "default-override:C:-1", ""],
)
def test_parse_default_override_id_rejects(shape_id):
    assert parse_default_override_id(shape_id) is None


# ---------------------------------------------------------------------------
# merge_chord_shapes
# ---------------------------------------------------------------------------

S1 = _shape(3, 2, 0, 0, 0, 3)
S2 = _shape(3, 5, 5, 4, 3, 3)
S3 = _shape(X, X, 5, 4, 3, 3)


def _frets(shapes):
    return [shape.frets for shape in shapes]


def test_merge_labels_built_in_shapes():
    merged = merge_chord_shapes({"G": [S1, S2]}, {})
    assert _frets(merged["G"]) == [S1.frets, S2.frets]
    assert [shape.label for shape in merged["G"]] == [DEFAULT_LABEL, DEFAULT_LABEL]


def test_merge_keeps_existing_labels():
    labelled = ChordShape(frets=S1.frets, label="Cowboy")
    merged = merge_chord_shapes({"G": [labelled]}, {})
    assert merged["G"][0].label == "Cowboy"


def test_merge_preferred_built_in_moves_to_front():
    merged = merge_chord_shapes({"G": [S1, S2, S3]}, {}, {"G": BuiltInSelection(2)})
    assert _frets(merged["G"]) == [S3.frets, S1.frets, S2.frets]


def test_merge_preferred_first_or_missing_is_no_op():
    built_in = {"G": [S1, S2]}
    assert _frets(merge_chord_shapes(built_in, {}, {"G": BuiltInSelection(0)})["G"]) == [S1.frets, S2.frets]
    assert _frets(merge_chord_shapes(built_in, {}, {"G": BuiltInSelection(7)})["G"]) == [S1.frets, S2.frets]
    assert _frets(merge_chord_shapes(built_in, {}, {"G": CustomSelection("nope")})["G"]) == [S1.frets, S2.frets]


def test_merge_appends_custom_shapes():
    custom = CustomChordShape(frets=S3.frets, id="custom-1")
    merged = merge_chord_shapes({"G": [S1, S2]}, {"G": [custom]})
    assert _frets(merged["G"]) == [S1.frets, S2.frets, S3.frets]
    assert merged["G"][2].label == CUSTOM_LABEL


def test_merge_custom_keeps_its_label():
    custom = CustomChordShape(frets=S3.frets, label="Mine", id="custom-1")
    assert merge_chord_shapes({}, {"G": [custom]})["G"][0].label == "Mine"


def test_merge_override_replaces_built_in_in_place():
    override = CustomChordShape(frets=S3.frets, id=build_default_override_id("G", 1))
    merged = merge_chord_shapes({"G": [S1, S2]}, {"G": [override]})
    assert _frets(merged["G"]) == [S1.frets, S3.frets]
    assert merged["G"][1].label == DEFAULT_LABEL


def test_merge_override_for_other_chord_is_appended():
    override = CustomChordShape(frets=S3.frets, id=build_default_override_id("C", 0))
    merged = merge_chord_shapes({"G": [S1]}, {"G": [override]})
    assert _frets(merged["G"]) == [S1.frets, S3.frets]
    assert merged["G"][1].label == CUSTOM_LABEL


def test_merge_override_past_built_ins_is_kept():
    override = CustomChordShape(frets=S3.frets, id=build_default_override_id("G", 5))
    merged = merge_chord_shapes({"G": [S1, S2]}, {"G": [override]})
    assert _frets(merged["G"]) == [S1.frets, S2.frets, S3.frets]


def test_merge_preferred_custom_moves_to_front():
    custom = CustomChordShape(frets=S3.frets, id="custom-1")
    merged = merge_chord_shapes({"G": [S1, S2]}, {"G": [custom]}, {"G": CustomSelection("custom-1")})
    assert _frets(merged["G"]) == [S3.frets, S1.frets, S2.frets]


def test_merge_includes_custom_only_symbols():
    custom = CustomChordShape(frets=S3.frets, id="custom-1")
    merged = merge_chord_shapes({"G": [S1]}, {"Gadd11": [custom]})
    assert set(merged) == {"G", "Gadd11"}


def test_merge_never_drops_shapes():
    custom = [
        CustomChordShape(frets=S3.frets, id=build_default_override_id("G", 0)),
        CustomChordShape(frets=S1.frets, id="custom-1"),
        CustomChordShape(frets=S2.frets, id="custom-2"),
    ]
    merged = merge_chord_shapes({"G": [S1, S2]}, {"G": custom}, {"G": CustomSelection("custom-2")})
    assert len(merged["G"]) == 4
    assert merged["G"][0].frets == S2.frets

    custom = [
        CustomChordShape(frets=S2.frets, id="custom-1"),
        CustomChordShape(frets=S3.frets, id=build_default_override_id("G", 1)),
    ]
    assert len(merge_chord_shapes({"G": [S1]}, {"G": custom})["G"]) == 3


def test_merge_override_past_built_ins_keeps_appended_custom():
    custom = [
        CustomChordShape(frets=S2.frets, id="custom-1"),
        CustomChordShape(frets=S3.frets, id=build_default_override_id("G", 1)),
    ]
    merged = merge_chord_shapes({"G": [S1]}, {"G": custom})
    assert _frets(merged["G"]) == [S1.frets, S3.frets, S2.frets]
