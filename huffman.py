"""
Реализует построение дерева Хаффмана, таблицы кодов и заголовка.

Дерево записывается в поток в прямом обходе: 0 для внутреннего узла,
1 и девять бит значения для листа.
"""

import heapq
from itertools import count
from typing import Dict, Iterator, List, Optional

from bitio import END_OF_STREAM
from format import ALPH_SIZE, BITS_PER_WORD, PSEUDO_EOF, MalformedHeader


LEAF_VALUE_BITS = BITS_PER_WORD + 1


class HuffNode:
    def __init__(self, value: int = 0, weight: int = 0,
                 left: Optional['HuffNode'] = None,
                 right: Optional['HuffNode'] = None):
        self.value = value
        self.weight = weight
        self.left = left
        self.right = right

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __repr__(self):
        if self.is_leaf:
            return f"HuffNode(value={self.value}, weight={self.weight})"
        return f"HuffNode(weight={self.weight}, left={self.left!r}, right={self.right!r})"


def read_for_counts(bit_input) -> List[int]:
    counts = [0] * (ALPH_SIZE + 1)

    while True:
        value = bit_input.read_bits(BITS_PER_WORD)
        if value == END_OF_STREAM:
            break
        counts[value] += 1

    counts[PSEUDO_EOF] = 1
    return counts


def make_tree_from_counts(counts: List[int]) -> HuffNode:
    """
    Жадно сливает два самых лёгких узла, пока не останется один.

    При равных весах первым выходит узел, попавший в очередь раньше:
    листья добавляются по возрастанию символа, слитые узлы после них.
    Первый извлечённый узел становится левым потомком.
    """
    order = count()
    heap = [(weight, next(order), HuffNode(value, weight))
            for value, weight in enumerate(counts) if weight > 0]
    heapq.heapify(heap)

    if not heap:
        raise ValueError("Cannot build a tree without symbols")

    while len(heap) > 1:
        _, _, left = heapq.heappop(heap)
        _, _, right = heapq.heappop(heap)

        parent = HuffNode(0, left.weight + right.weight, left, right)
        heapq.heappush(heap, (parent.weight, next(order), parent))

    return heap[0][2]


def make_codings_from_tree(root: HuffNode) -> Dict[int, str]:
    codes: Dict[int, str] = {}

    def traverse(node: HuffNode, code: str):
        if node.is_leaf:
            codes[node.value] = code
            return

        traverse(node.left, code + '0')
        traverse(node.right, code + '1')

    traverse(root, '')
    return codes


def write_header(root: HuffNode, out):
    if root.is_leaf:
        out.write_bits(1, 1)
        out.write_bits(LEAF_VALUE_BITS, root.value)
    else:
        out.write_bits(1, 0)
        write_header(root.left, out)
        write_header(root.right, out)


def _read_node(bit_input, depth: int) -> HuffNode:
    # 257 leaves never need a path longer than ALPH_SIZE
    if depth > ALPH_SIZE:
        raise MalformedHeader("Tree header is deeper than the alphabet allows")

    bit = bit_input.read_bits(1)
    if bit == END_OF_STREAM:
        raise MalformedHeader("Tree header ended before the tree was complete")

    if bit == 0:
        left = _read_node(bit_input, depth + 1)
        right = _read_node(bit_input, depth + 1)
        return HuffNode(0, 0, left, right)

    value = bit_input.read_bits(LEAF_VALUE_BITS)
    if value == END_OF_STREAM:
        raise MalformedHeader("Tree header ended inside a leaf value")
    if value > PSEUDO_EOF:
        raise MalformedHeader(f"Leaf value {value} is outside the alphabet")
    return HuffNode(value, 0)


def read_tree_header(bit_input) -> HuffNode:
    root = _read_node(bit_input, 0)

    # a lone leaf consumes no payload bits, only PSEUDO_EOF can end it
    if root.is_leaf and root.value != PSEUDO_EOF:
        raise MalformedHeader(f"Single leaf tree holds {root.value}, not PSEUDO_EOF")
    return root


class HuffmanTree:
    def __init__(self, root: HuffNode):
        self.root = root
        self.codes: Dict[int, str] = make_codings_from_tree(root)

    @staticmethod
    def from_counts(counts: List[int]) -> 'HuffmanTree':
        return HuffmanTree(make_tree_from_counts(counts))

    @staticmethod
    def read(bit_input) -> 'HuffmanTree':
        return HuffmanTree(read_tree_header(bit_input))

    def write(self, out):
        write_header(self.root, out)

    def leaves(self) -> Iterator[HuffNode]:
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.is_leaf:
                yield node
            else:
                stack.append(node.right)
                stack.append(node.left)

    def header_bits(self) -> int:
        leaf_count = len(self.codes)
        return leaf_count * (1 + LEAF_VALUE_BITS) + (leaf_count - 1)
