
from lazy import wrap
from utils import CountingSource, generic_range


def fibonacci(limit):
    a, b = 0, 1
    while b <= limit:
        yield b
        a, b = b, a + b


def noisy_square(x, index):
    # Print so laziness is visible
    print(f"  computing #{index}: {x}^2 ...")
    return x * x


print("\n--- Demo: laziness (no work until pulled) ---")
source = CountingSource(generic_range(1, 10_000))
pipeline = (
    wrap(source)
    .map(noisy_square)
    .filter(lambda v: v % 2 == 0)
    .drop(1)
    .take(3)
)
print(f"Constructed pipeline. Pulled so far: {source.pulls}")
print(f"Result: {pipeline.to_list()}")
print(f"Pulled from a source of 9999 elements: {source.pulls}\n")

print("--- Demo: short-circuiting queries ---")
source = CountingSource([1, 2, 3, 4, 5])
print(f"some(x == 3): {wrap(source).some(lambda x: x == 3)} after {source.pulls} pulls")
print(f"every(x > 0) on empty: {wrap().every(lambda x: x > 0)}")
print(f"find first Fibonacci above 100: {wrap(fibonacci(10_000)).find(lambda x: x > 100)}\n")

print("--- Demo: flat_map ---")
print(wrap([1, 2, 3]).flat_map(lambda x: generic_range(0, x)).to_list())
print()

print("--- Demo: closing a chain releases the source once ---")
source = CountingSource(range(100))
chain = wrap(source).map(lambda x, i: x + 1).filter(lambda x: x % 3 == 0).take(10)
print(f"First element: {chain.next().value}")
chain.close()
chain.close()
print(f"Source closes after two close() calls: {source.closes}")
