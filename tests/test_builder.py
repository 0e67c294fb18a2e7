"""Tests for kd-tree builder."""

import random

import pytest
from site_kdtree.builder import (
    BuilderConfig,
    KdTreeBuilder,
    NodeIdCounter,
    build_kdtree,
    partition,
)
from site_kdtree.errors import (
    ConfigurationError,
    DimensionMismatch,
    TooDeep,
    YearOutOfRange,
)
from site_kdtree.kdtree import InternalNode, LeafNode, iter_nodes, leaf_points
from site_kdtree.primitives import Point
from site_kdtree.sites import sample_sites
from site_kdtree.strategy import BucketSizeStrategy, YearBalanceStrategy


def site_key(p):
    return p.attributes[0]


def line_points(years):
    """1D points at x = 0, 1, 2, ... with the given years."""
    return [Point([float(i)], year, [f"S{i}"]) for i, year in enumerate(years)]


@pytest.fixture
def sites():
    return sample_sites(200, dimensions=3, years=(2001, 2002, 2003), seed=11)


@pytest.fixture
def balanced_tree(sites):
    tree, _ = build_kdtree(sites, min_year=2001, max_year=2003, min_size=5)
    return tree


class TestBuilderConfig:
    """Tests for BuilderConfig."""

    def test_default_config(self):
        """Test default configuration values."""
        config = BuilderConfig(min_year=2001, max_year=2002)
        assert config.min_size == 1
        assert config.dimensions == 3
        assert config.max_depth == 64

    def test_invalid_year_range(self):
        """Test that min_year > max_year raises error."""
        with pytest.raises(ConfigurationError):
            BuilderConfig(min_year=2003, max_year=2001)

    def test_invalid_dimensions(self):
        """Test that dimensions < 1 raises error."""
        with pytest.raises(ConfigurationError):
            BuilderConfig(min_year=2001, max_year=2002, dimensions=0)

    def test_invalid_min_size(self):
        """Test that negative min_size raises error."""
        with pytest.raises(ConfigurationError):
            BuilderConfig(min_year=2001, max_year=2002, min_size=-1)

    def test_invalid_max_depth(self):
        """Test that max_depth < 1 raises error."""
        with pytest.raises(ConfigurationError):
            BuilderConfig(min_year=2001, max_year=2002, max_depth=0)


class TestNodeIdCounter:
    """Tests for NodeIdCounter."""

    def test_monotonic(self):
        """Test that ids increase by one."""
        counter = NodeIdCounter()
        assert [counter.next_id() for _ in range(3)] == [0, 1, 2]
        assert counter.peek == 3

    def test_start(self):
        """Test a custom starting id."""
        assert NodeIdCounter(10).next_id() == 10


class TestKdTreeBuilder:
    """Tests for KdTreeBuilder."""

    def test_empty_input(self):
        """Test that no points give a single empty leaf."""
        tree, stats = build_kdtree([], min_year=2001, max_year=2002)
        assert isinstance(tree.root, LeafNode)
        assert tree.root.points == []
        assert tree.node_count == 1
        assert stats.leaves_created == 1

    def test_small_split(self):
        """Test a tree with one accepted split."""
        points = line_points([2001, 2002, 2001, 2001, 2002])
        tree, stats = build_kdtree(
            points, min_year=2001, max_year=2002, min_size=1, dimensions=1
        )

        root = tree.root
        assert isinstance(root, InternalNode)
        assert root.node_id == 0
        assert root.median[0] == 2.0
        assert isinstance(root.left, LeafNode)
        assert isinstance(root.right, LeafNode)
        assert root.left.node_id == 1
        assert root.right.node_id == 2

        pairs = tree.leaf_points()
        assert [i for i, _ in pairs] == [1, 1, 2, 2, 2]
        assert [p[0] for _, p in pairs] == [0.0, 1.0, 2.0, 3.0, 4.0]
        assert stats.internal_nodes_created == 1
        assert stats.leaves_created == 2

    def test_forty_points_stay_one_leaf(self):
        """Test that an uneven median split keeps all 40 points in one leaf."""
        years = [2001, 2002] * 20
        points = [Point([float(i), float(39 - i)], y) for i, y in enumerate(years)]
        tree, _ = build_kdtree(points, min_year=2001, max_year=2002, min_size=20, dimensions=2)

        assert isinstance(tree.root, LeafNode)
        assert len(tree.root.points) == 40
        assert tree.node_count == 1

    def test_zero_min_size_gives_single_point_leaves(self):
        """Test that disabling the year rule splits down to one point per leaf."""
        points = [
            Point([float(i), float((i * 7) % 16), float((i * 3) % 16)], 2001)
            for i in range(16)
        ]
        tree, _ = build_kdtree(points, min_year=2001, max_year=2001, min_size=0)

        assert tree.leaf_count == 16
        assert all(len(leaf.points) == 1 for leaf in tree.leaves())
        assert tree.depth == 4

    def test_split_dimensions_round_robin(self, balanced_tree):
        """Test that each level splits on the next dimension."""
        assert balanced_tree.root.split_dimension == 0
        for node, depth in balanced_tree.iter_nodes():
            assert node.split_dimension == depth % 3

    def test_input_not_reordered(self, sites):
        """Test that the caller's list is left untouched."""
        before = list(sites)
        build_kdtree(sites, min_year=2001, max_year=2003, min_size=5)
        assert sites == before

    def test_dimension_mismatch(self):
        """Test that points of the wrong dimension are rejected before building."""
        builder = KdTreeBuilder(BuilderConfig(min_year=2001, max_year=2001, dimensions=2))
        with pytest.raises(DimensionMismatch):
            builder.build([Point([1.0, 2.0], 2001), Point([1.0, 2.0, 3.0], 2001)])
        assert builder.stats.nodes_created == 0

    def test_year_out_of_range(self):
        """Test that a point outside the year range is rejected before building."""
        counter = NodeIdCounter()
        builder = KdTreeBuilder(BuilderConfig(min_year=2001, max_year=2002, dimensions=1))
        with pytest.raises(YearOutOfRange):
            builder.build(line_points([2001, 2002, 2004]), counter)
        assert counter.peek == 0

    def test_too_deep(self):
        """Test that exceeding max_depth raises TooDeep."""
        points = line_points([2001] * 4)
        with pytest.raises(TooDeep):
            build_kdtree(points, min_year=2001, max_year=2001, min_size=0, dimensions=1, max_depth=1)

    def test_custom_strategy(self, sites):
        """Test building with the bucket-size strategy."""
        config = BuilderConfig(min_year=2001, max_year=2003)
        builder = KdTreeBuilder(config, strategy=BucketSizeStrategy(max_size=10))
        tree = builder.build(sites)

        assert tree.leaf_count > 1
        assert all(len(leaf.points) <= 10 for leaf in tree.leaves())
        assert tree.point_count == len(sites)

    def test_determinism(self, sites):
        """Test that builds are deterministic."""
        tree1, stats1 = build_kdtree(sites, min_year=2001, max_year=2003, min_size=5)
        tree2, stats2 = build_kdtree(sites, min_year=2001, max_year=2003, min_size=5)
        assert tree1.leaf_points() == tree2.leaf_points()
        assert stats1 == stats2


class TestTreeProperties:
    """Tests for invariants of built trees."""

    def test_lossless_partition(self, sites, balanced_tree):
        """Test that every point lands in exactly one leaf."""
        out = [p for _, p in balanced_tree.leaf_points()]
        assert sorted(out, key=site_key) == sorted(sites, key=site_key)

    def test_tree_splits(self, balanced_tree):
        """Test that the fixture actually splits."""
        assert balanced_tree.leaf_count > 1

    def test_node_shape(self, balanced_tree):
        """Test that nodes are either leaves or have two children and no points."""
        for node, _ in balanced_tree.iter_nodes():
            if isinstance(node, InternalNode):
                assert node.left is not None and node.right is not None
                assert not hasattr(node, "points")
            else:
                assert isinstance(node, LeafNode)

    def test_split_correctness(self, balanced_tree):
        """Test that left subtrees precede the median and right subtrees do not."""
        for node, _ in balanced_tree.iter_nodes():
            if not isinstance(node, InternalNode):
                continue
            d = node.split_dimension
            assert all(p.precedes(node.median, d) for _, p in leaf_points(node.left))
            assert not any(p.precedes(node.median, d) for _, p in leaf_points(node.right))

    def test_year_balance(self, balanced_tree):
        """Test that both halves of every split keep min_size sites per year."""
        strategy = YearBalanceStrategy(min_size=5, min_year=2001, max_year=2003)
        for node, _ in balanced_tree.iter_nodes():
            if isinstance(node, InternalNode):
                for child in node.children:
                    assert strategy.check_years([p for _, p in leaf_points(child)])

    def test_year_balance_with_duplicates(self):
        """Test the per-year guarantee on points drawn from a 3x3 grid."""
        rng = random.Random(4)
        points = [
            Point([float(rng.randint(0, 2)), float(rng.randint(0, 2))], 2001 + i % 3, [f"S{i}"])
            for i in range(120)
        ]
        tree, _ = build_kdtree(points, min_year=2001, max_year=2003, min_size=2, dimensions=2)
        strategy = YearBalanceStrategy(min_size=2, min_year=2001, max_year=2003)
        assert isinstance(tree.root, InternalNode)

        out = [p for _, p in tree.leaf_points()]
        assert sorted(out, key=site_key) == sorted(points, key=site_key)
        for node, _ in tree.iter_nodes():
            if isinstance(node, InternalNode):
                for child in node.children:
                    assert strategy.check_years([p for _, p in leaf_points(child)])

    def test_leaves_refuse_further_split(self, balanced_tree):
        """Test that no leaf could have been split."""
        strategy = YearBalanceStrategy(min_size=5, min_year=2001, max_year=2003)
        for leaf in balanced_tree.leaves():
            points = list(leaf.points)
            assert strategy.compute_median(points, leaf.split_dimension) is None

    def test_bounding_boxes(self, balanced_tree):
        """Test that each box contains its whole subtree."""
        for node, _ in balanced_tree.iter_nodes():
            assert all(node.box.contains(p) for _, p in leaf_points(node))

    def test_ids_pre_order(self, balanced_tree):
        """Test that ids are unique and follow pre-order."""
        ids = [node.node_id for node, _ in balanced_tree.iter_nodes()]
        assert ids == list(range(balanced_tree.node_count))
        for node, _ in balanced_tree.iter_nodes():
            if isinstance(node, InternalNode):
                assert node.node_id < node.left.node_id
                assert node.node_id < node.right.node_id

    def test_shared_counter(self, sites):
        """Test that a shared counter keeps ids unique across trees."""
        counter = NodeIdCounter()
        tree1, _ = build_kdtree(sites, min_year=2001, max_year=2003, min_size=5, counter=counter)
        tree2, _ = build_kdtree(sites, min_year=2001, max_year=2003, min_size=5, counter=counter)

        ids2 = [node.node_id for node, _ in iter_nodes(tree2.root)]
        assert ids2[0] == tree1.node_count
        assert counter.peek == tree1.node_count + tree2.node_count

    def test_leaf_points_idempotent(self, balanced_tree):
        """Test that flattening does not change the tree."""
        assert balanced_tree.leaf_points() == balanced_tree.leaf_points()


class TestPartition:
    """Tests for partition."""

    def test_ties_go_right(self):
        """Test that points equal to the median go to the right."""
        median = Point([1.0, 1.0])
        points = [Point([0.0, 5.0]), Point([1.0, 1.0]), Point([1.0, 0.0]), Point([2.0, 0.0])]
        left, right = partition(points, median, 0)
        assert [p.coordinates for p in left] == [[0.0, 5.0], [1.0, 0.0]]
        assert [p.coordinates for p in right] == [[1.0, 1.0], [2.0, 0.0]]


class TestBuilderStats:
    """Tests for builder statistics."""

    def test_stats_relationship(self, sites):
        """Test relationships between statistics."""
        tree, stats = build_kdtree(sites, min_year=2001, max_year=2003, min_size=5)
        assert stats.points_in == 200
        assert stats.nodes_created == stats.leaves_created + stats.internal_nodes_created
        assert stats.nodes_created == tree.node_count
        assert stats.max_depth_reached == tree.depth

    def test_stats_reset(self, sites):
        """Test that stats are reset for each build."""
        builder = KdTreeBuilder(BuilderConfig(min_year=2001, max_year=2003, min_size=5))
        builder.build(sites)
        first = builder.stats.nodes_created
        builder.build(sites)
        assert builder.stats.nodes_created == first
