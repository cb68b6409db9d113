"""Shared pytest fixtures for the kfmt test suite."""

import pytest

from kfmt.formatting import FormattingOptions


# Already formatted with the default style: formatting must not touch it.
CANONICAL_SOURCE = """package com.example

import com.example.util.helper

class Greeter(private val name: String) {
  fun greet(): String {
    val message = helper(name)
    return message
  }
}
"""

# Everything wrong at once: unsorted and duplicated imports, semicolons,
# template braces, cramped spacing and deep blank runs.
MESSY_SOURCE = """package com.example.app

import kotlin.math.max
import com.example.util.Helper
import com.example.util.Helper

class Counter(private val start: Int, val step: Int = 1) {
    private var count = start;



    fun next(): Int {
        count += step
        return count
    }

    fun describe(value: Int): String = when {
        value < 0 -> "negative"
        value == 0 -> "zero"
        else -> "positive: ${value}"
    }
}

fun main() {
    val counter = Counter(0)
    for (i in 0 until 3) { println(counter.next()) }
    val items = listOf(1, 2, 3).map { it * 2 }.filter { it > 2 }
    if (items.isEmpty()) println("empty") else println(max(items.first(), 1))
    try { Helper.run() } catch (e: Exception) { println(e) }
}
"""


@pytest.fixture
def options():
    """Default formatting options."""
    return FormattingOptions()


@pytest.fixture
def keep_imports():
    """Default options with unused import removal switched off."""
    return FormattingOptions(remove_unused_imports=False)


@pytest.fixture
def canonical_source():
    return CANONICAL_SOURCE


@pytest.fixture
def messy_source():
    return MESSY_SOURCE
