from backend.app.core.config import settings, configure_logging
from backend.app.engine.bot import Bot
from backend.app.engine.game import ConnectN
from backend.app.models.enums import Symbol


def ask_int(prompt: str) -> int:
    while True:
        try:
            return int(input(prompt))
        except ValueError:
            prompt = "Please enter a valid number: "


def ask_yes_no(prompt: str) -> bool:
    answer = input(prompt).strip().lower()
    while answer not in ("y", "n"):
        answer = input("Please type either y or n: ").strip().lower()
    return answer == "y"


def ask_symbol(prompt: str) -> Symbol:
    answer = input(prompt).strip().lower()
    while answer not in ("x", "o"):
        answer = input("Please type either x or o: ").strip().lower()
    return Symbol(answer)


def ask_board_size(prompt: str) -> int:
    size = ask_int(prompt)
    while not ConnectN.is_valid_board_size(size):
        size = ask_int("Please choose a number from 4 to 9: ")
    return size


def change_settings(game: ConnectN, bot: Bot):
    """
    Before every game, lets the user choose the board, the run length,
    whether to play against the bot, their symbol and who goes first.
    """
    bot.used = not ask_yes_no("Would you like to play with a friend? (y/n): ")
    game.resize_board(ask_board_size("How many rows would you like? (4-9): "),
                      ask_board_size("How many columns would you like? (4-9): "))

    if game.is_forced_winning_nr():
        print("In that case, the number of pieces that have to be in a row for winning will have to be 4 as well.")
        game.set_winning_nr(4)
    else:
        winning_nr = ask_int(f"How many pieces should be in a row to win? (4-{game.max_winning_nr}): ")
        while not game.is_valid_winning_nr(winning_nr):
            winning_nr = ask_int(f"Please choose a number between 4 and {game.max_winning_nr}: ")
        game.set_winning_nr(winning_nr)

    if bot.used:
        bot_symbol = ask_symbol("Which symbol would you like? (x/o): ").opposite
        if ask_yes_no("Would you like to go first? (y/n): "):
            game.set_turn_of_player(bot_symbol.opposite)
        else:
            game.set_turn_of_player(bot_symbol)
        print("The bot is setting up its simulations...")
        bot.initialise(game, bot_symbol)
    else:
        game.set_turn_of_player(ask_symbol("Who should go first? (x/o): "))


def ask_for_move(game: ConnectN) -> int:
    """Returns a 1-indexed free column, or 0 to concede."""
    move = ask_int(f"Player {game.turn_of_player}, select a free column or concede with 0: ")
    while True:
        if move == 0:
            return 0
        if not game.is_col(move):
            move = ask_int("This column doesn't exist. Try again: ")
        elif game.is_col_full(move - 1):
            move = ask_int("This column is full. Try again: ")
        else:
            return move


def play_game(game: ConnectN, bot: Bot):
    """Loops through player turns until a win, a full board or a concession."""
    while True:
        print("\n" + game.get_visual_board())

        if bot.used and game.turn_of_player == bot.symbol:
            print("\nBot is thinking...")
            move = bot.choose_move()
            print(f"Bot plays Column: {move}")
        else:
            move = ask_for_move(game)

        if move == 0:
            print(f"\n---- PLAYER {game.turn_of_player} CONCEDED ----")
            return

        game.drop_piece(move - 1)

        if game.winner:
            print("\n" + game.get_visual_board())
            print(f"---- PLAYER {game.winner} WINS! ----")
            return
        if game.is_draw():
            print("\n" + game.get_visual_board())
            print("\n---- BOARD FULL - GAME OVER ----")
            return

        if bot.used:
            bot.advance_after_move(move)


def main():
    configure_logging(settings.log_level)

    print("=======================================")
    print("   CONNECT N: Human vs Bot")
    print("=======================================")

    game = ConnectN()
    bot = Bot(symbol=settings.game.bot_symbol, horizon=settings.game.horizon)

    while True:
        change_settings(game, bot)
        print("\n---- NEW GAME STARTED ----")
        play_game(game, bot)
        if not ask_yes_no("\nWould you like to play again? (y/n): "):
            break


if __name__ == "__main__":
    main()
