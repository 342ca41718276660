class PaginatePage:
    @staticmethod
    def offset(page: int, per_page: int) -> int:
        return (max(page, 1) - 1) * per_page
