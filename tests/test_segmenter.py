"""Tests for behavioral sequence segmentation."""

import pytest

from worldmodel.classifiers.intent_classifier import IntentClassifier
from worldmodel.sequences.segmenter import SequenceSegmenter
from worldmodel.utils.interaction import parse_interactions


@pytest.fixture
def segmenter():
    return SequenceSegmenter()


def assert_pure_and_contiguous(sequence, total):
    covered = []
    for segment in sequence.segments:
        assert segment.end_index - segment.start_index + 1 == len(segment.interactions)
        covered.extend(range(segment.start_index, segment.end_index + 1))
    assert covered == list(range(total))
    for previous, current in zip(sequence.segments, sequence.segments[1:]):
        assert previous.type != current.type


class TestSegmentation:

    def test_browse_to_cart(self, segmenter, browse_session):
        interactions = parse_interactions(browse_session)

        sequence = segmenter.segment(interactions)

        assert [s.type for s in sequence.segments] == ['browse', 'focus', 'configure', 'convert']
        assert sequence.overall_type == 'browse_to_cart'
        assert sequence.conversion_complete is True
        assert sequence.user_intent == "Shopping for men's items"
        assert_pure_and_contiguous(sequence, len(interactions))

    def test_search_to_cart(self, segmenter, search_session):
        interactions = parse_interactions(search_session)

        sequence = segmenter.segment(interactions)

        assert sequence.overall_type == 'search_to_cart'
        assert sequence.segments[-1].type == 'convert'
        assert_pure_and_contiguous(sequence, len(interactions))

    def test_configure_segment_groups_variant_picks(self, segmenter, browse_session):
        sequence = segmenter.segment(parse_interactions(browse_session))

        configure = [s for s in sequence.segments if s.type == 'configure'][0]

        assert [i.text for i in configure.interactions] == ['Navy', 'M']
        assert configure.start_index == 2
        assert configure.end_index == 3
        assert configure.intent == 'Selecting product variants and options'

    def test_classifications_travel_with_segments(self, segmenter, browse_session):
        interactions = parse_interactions(browse_session)
        classifications = IntentClassifier().classify_session(interactions)

        sequence = segmenter.segment(interactions, classifications)

        flattened = [c for s in sequence.segments for c in s.classifications]
        assert flattened == classifications

    def test_empty_session(self, segmenter):
        sequence = segmenter.segment([])

        assert sequence.segments == []
        assert sequence.overall_type == 'navigation_flow'
        assert sequence.quality_score == 0.0
        assert sequence.conversion_complete is False

    def test_quality_is_bounded(self, segmenter, browse_session):
        sequence = segmenter.segment(parse_interactions(browse_session))

        assert 0.0 < sequence.quality_score <= 1.0

    def test_segment_confidence_grows_with_length(self):
        short = SequenceSegmenter.segment_confidence('browse', 1)
        long = SequenceSegmenter.segment_confidence('browse', 20)

        assert short == pytest.approx(0.73)
        assert long == pytest.approx(0.9)
        assert SequenceSegmenter.segment_confidence('convert', 20) == 1.0


class TestSegmentInvariants:

    @pytest.mark.parametrize('session', ['browse_session', 'search_session', 'shuffled_session'])
    def test_every_segment_holds_one_behavior(self, segmenter, request, session):
        interactions = parse_interactions(request.getfixturevalue(session))

        sequence = segmenter.segment(interactions)

        behaviors = [
            segmenter.classify_behavior(i, p)
            for i, p in zip(interactions, sequence.page_classifications)
        ]
        for segment in sequence.segments:
            assert set(behaviors[segment.start_index:segment.end_index + 1]) == {segment.type}
        assert_pure_and_contiguous(sequence, len(interactions))

    def test_search_after_product_is_not_search_to_cart(self, segmenter, search_session):
        search, *product_steps = search_session
        interactions = parse_interactions(product_steps + [search])

        sequence = segmenter.segment(interactions)

        assert sequence.overall_type != 'search_to_cart'
        assert sequence.conversion_complete is True


@pytest.fixture
def shuffled_session(browse_session, search_session):
    return [search_session[0]] + browse_session[::-1]
