from timoni_operator.commands import app

if __name__ == "__main__":
    app()
