"""Minimal ABIs for the two IsYourDayOk contracts (only the members we call)."""

NFT_CONTRACT_ABI = [
    {
        "type": "function",
        "name": "hasUserMinted",
        "stateMutability": "view",
        "inputs": [
            {"name": "user", "type": "address"},
            {"name": "achievementType", "type": "uint8"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "mintAchievement",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "achievementType", "type": "uint8"},
            {"name": "improvementRating", "type": "uint256"},
            {"name": "tokenURI", "type": "string"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "event",
        "name": "AchievementMinted",
        "anonymous": False,
        "inputs": [
            {"name": "tokenId", "type": "uint256", "indexed": True},
            {"name": "user", "type": "address", "indexed": True},
            {"name": "achievementType", "type": "uint8", "indexed": False},
            {"name": "improvementRating", "type": "uint256", "indexed": False},
        ],
    },
]

POINTS_CONTRACT_ABI = [
    {"type": "function", "name": "logMood", "stateMutability": "nonpayable", "inputs": [], "outputs": []},
    {"type": "function", "name": "submitJournal", "stateMutability": "nonpayable", "inputs": [], "outputs": []},
    {"type": "function", "name": "completeMeditation", "stateMutability": "nonpayable", "inputs": [], "outputs": []},
    {
        "type": "function",
        "name": "getUserData",
        "stateMutability": "view",
        "inputs": [{"name": "user", "type": "address"}],
        "outputs": [
            {"name": "totalPoints", "type": "uint256"},
            {"name": "journalStreak", "type": "uint256"},
            {"name": "meditationStreak", "type": "uint256"},
            {"name": "lastJournalDate", "type": "uint256"},
            {"name": "lastMeditationDate", "type": "uint256"},
        ],
    },
    {
        "type": "function",
        "name": "canMeditateToday",
        "stateMutability": "view",
        "inputs": [{"name": "user", "type": "address"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
]
