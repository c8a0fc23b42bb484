"""wasixcc - WASIX compiler, linker and optimizer driver.

Translates compiler-style command lines into clang, wasm-ld and wasm-opt
invocations targeting WASIX.
"""

__version__ = "0.3.0"
