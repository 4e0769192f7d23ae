import pytest
import numpy as np
import logging
from unittest.mock import MagicMock, patch
from modules.index_sampler import RandomIndexSampler, StratifiedIndexSampler
from utils.exceptions import ConfigurationError, DataValidationError

@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)

@pytest.fixture
def targets():
    return np.array([0.0] * 60 + [1.0] * 40)

def test_random_sample_is_reproducible(targets, mock_logger):
    first = RandomIndexSampler(seed=24, logger=mock_logger).sample(targets, 30)
    second = RandomIndexSampler(seed=24, logger=mock_logger).sample(targets, 30)
    assert np.array_equal(first, second)

def test_random_sample_draws_distinct_available_indices(targets, mock_logger):
    available = np.arange(10, 80)
    sample = RandomIndexSampler(seed=1, logger=mock_logger).sample(targets, 25, available)

    assert len(sample) == 25
    assert len(np.unique(sample)) == 25
    assert set(sample).issubset(set(available))

def test_per_call_seed_overrides_stream(targets, mock_logger):
    sampler = RandomIndexSampler(seed=1, logger=mock_logger)
    a = sampler.sample(targets, 10, seed=99)
    sampler.sample(targets, 10)
    b = sampler.sample(targets, 10, seed=99)
    assert np.array_equal(a, b)

def test_consecutive_samples_continue_stream(targets, mock_logger):
    sampler = RandomIndexSampler(seed=1, logger=mock_logger)
    assert not np.array_equal(sampler.sample(targets, 20), sampler.sample(targets, 20))

def test_full_size_sample_is_a_permutation(targets, mock_logger):
    available = np.arange(len(targets))
    sample = RandomIndexSampler(seed=3, logger=mock_logger).sample(targets, len(available), available)

    assert np.array_equal(np.sort(sample), available)
    assert not np.array_equal(sample, available)

def test_stratified_sample_preserves_class_shares(targets, mock_logger):
    sample = StratifiedIndexSampler(seed=5, logger=mock_logger).sample(targets, 50)

    assert len(sample) == 50
    assert len(np.unique(sample)) == 50
    assert np.sum(targets[sample] == 0.0) == 30
    assert np.sum(targets[sample] == 1.0) == 20

def test_stratified_remainder_goes_to_largest_fraction(mock_logger):
    # Exact shares 3.5, 3.5, 3.0: floors sum to 9, the missing unit breaks the tie by label order.
    targets = np.array([0.0] * 7 + [1.0] * 7 + [2.0] * 6)
    sample = StratifiedIndexSampler(seed=5, logger=mock_logger).sample(targets, 10)

    assert len(sample) == 10
    assert np.sum(targets[sample] == 0.0) == 4
    assert np.sum(targets[sample] == 1.0) == 3
    assert np.sum(targets[sample] == 2.0) == 3

def test_stratified_sample_respects_available_indices(targets, mock_logger):
    available = np.concatenate([np.arange(0, 30), np.arange(60, 80)])
    sample = StratifiedIndexSampler(seed=5, logger=mock_logger).sample(targets, 25, available)

    assert set(sample).issubset(set(available))
    assert np.sum(targets[sample] == 0.0) == 15
    assert np.sum(targets[sample] == 1.0) == 10

@pytest.mark.parametrize("sample_size", [0, 101])
def test_invalid_sample_size(targets, mock_logger, sample_size):
    with pytest.raises(ConfigurationError, match="sample_size"):
        RandomIndexSampler(seed=1, logger=mock_logger).sample(targets, sample_size)

def test_available_indices_outside_targets(targets, mock_logger):
    with pytest.raises(DataValidationError):
        StratifiedIndexSampler(seed=1, logger=mock_logger).sample(targets, 2, [98, 99, 100])

@pytest.mark.parametrize("classes", [4, 10])
def test_stratified_half_sample_of_small_equal_classes(mock_logger, classes):
    targets = np.repeat(np.arange(classes, dtype=float), 3)
    sample = StratifiedIndexSampler(seed=1, logger=mock_logger).sample(targets, len(targets) // 2)

    per_class = [np.sum(targets[sample] == label) for label in range(classes)]
    assert sum(per_class) == len(targets) // 2
    assert all(count in (1, 2) for count in per_class)

def test_apportion_favors_larger_strata_on_equal_fractions():
    shares = StratifiedIndexSampler._apportion(np.array([1, 3]), 2)
    assert shares.tolist() == [0, 2]
    shares = StratifiedIndexSampler._apportion(np.array([3, 1, 1, 1]), 3)
    assert shares.tolist() == [2, 1, 0, 0]

@pytest.mark.parametrize("counts", [[1], [2, 1, 1, 1, 1], [5, 3, 3, 1], [7, 7, 6], [3] * 10, [50, 1, 1]])
def test_apportion_is_exact_and_never_exceeds_a_stratum(counts):
    counts = np.array(counts)
    for sample_size in range(1, counts.sum() + 1):
        shares = StratifiedIndexSampler._apportion(counts, sample_size)
        assert shares.sum() == sample_size
        assert np.all(shares >= 0)
        assert np.all(shares <= counts)

def test_apportion_rejects_sample_larger_than_strata():
    with pytest.raises(DataValidationError, match="cannot draw"):
        StratifiedIndexSampler._apportion(np.array([2, 1]), 5)

def test_stratum_too_small_for_its_share_is_reported(mock_logger):
    targets = np.array([0.0, 0.0, 1.0, 1.0, 1.0])
    sampler = StratifiedIndexSampler(seed=1, logger=mock_logger)
    with patch.object(StratifiedIndexSampler, '_apportion', return_value=np.array([3, 0])):
        with pytest.raises(DataValidationError, match="has 2 members but 3 were requested"):
            sampler.sample(targets, 3)
