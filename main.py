import asyncio
import sys
import threading
import time

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from tools.web.factory import create_coordinator

CLI_USER_ID = "cli"


def show_loading_animation(stop_event: threading.Event) -> None:
    """
    Show a loading animation in the console.

    Args:
        stop_event: A threading.Event that will be set to stop the animation
    """
    while not stop_event.is_set():
        for char in '|/-\\':
            if stop_event.is_set():
                break
            sys.stdout.write(f'\r\033[93mSearching {char}\033[0m')
            sys.stdout.flush()
            time.sleep(0.1)

    # Clear the loading line
    sys.stdout.write('\r' + ' ' * 20 + '\r')
    sys.stdout.flush()


def print_response(response) -> None:
    metadata = response.metadata
    print(f"\nAI: {response.text}")
    sources = metadata.get("sources") or []
    if sources:
        print("\nSources:")
        for url in sources:
            print(f"  - {url}")
    flags = f"results={metadata.get('totalResults', 0)} confidence={metadata.get('confidence', 0.0):.2f}"
    if not metadata.get("aiGenerated"):
        flags += " (fallback summary)"
    if metadata.get("rateLimited"):
        flags += " (search provider rate limited)"
    print(f"[{flags}]\n")


def main():
    try:
        coordinator = create_coordinator()
    except Exception as e:
        print(f"Error initializing deep search: {str(e)}")
        return

    history: list[dict[str, str]] = []

    print("\n=== Deep Search ===")
    print("Type 'exit' to quit, 'stats' to see cache usage, or 'help' for commands\n")

    while True:
        try:
            user_input = input("You: ").strip()

            if not user_input:
                continue

            if user_input.lower() in ('exit', 'quit'):
                print("\nGoodbye!")
                break

            if user_input.lower() == 'stats':
                stats = coordinator.cache.stats(CLI_USER_ID)
                print("\n=== Cache Usage ===")
                print(f"Entries: {stats['entryCount']} ({stats['expiredCount']} expired)")
                print(f"Size: {stats['totalBytes']} bytes in {stats['directory']}\n")
                continue

            if user_input.lower() == 'clear':
                removed = coordinator.cache.clear(CLI_USER_ID)
                print(f"\nRemoved {removed} cached entries\n")
                continue

            if user_input.lower() == 'help':
                print("\n=== Available Commands ===")
                print("help      - Show this help message")
                print("stats     - Show cache statistics")
                print("clear     - Clear your cached results")
                print("exit/quit - Exit the program\n")
                continue

            # Show loading animation in a separate thread
            stop_animation = threading.Event()
            loading_thread = threading.Thread(target=show_loading_animation, args=(stop_animation,))
            loading_thread.daemon = True
            loading_thread.start()

            try:
                response = asyncio.run(coordinator.run(CLI_USER_ID, user_input, history))
            finally:
                stop_animation.set()
                loading_thread.join()

            print_response(response)
            history.append({"role": "user", "content": user_input})
            history.append({"role": "assistant", "content": response.text})

        except KeyboardInterrupt:
            print("\nExiting...")
            break
        except Exception as e:
            print(f"\nError: {str(e)}")
            continue


if __name__ == "__main__":
    main()
